from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..users.model import SessionUser


def can_manage_club(actor: SessionUser, club_id: Optional[int]) -> bool:
    """Super admins manage every club; club admins manage their own."""
    if actor.role == Role.SUPER_ADMIN:
        return True
    return actor.role == Role.CLUB_ADMIN and club_id is not None and actor.club_id == club_id


def require_club_manager(actor: SessionUser, club_id: Optional[int]) -> None:
    if not can_manage_club(actor, club_id):
        raise AuthorizationError("You do not have permission to manage this club")


def require_role(actor: SessionUser, *roles: Role) -> None:
    if actor.role not in roles:
        raise AuthorizationError("You do not have permission")
