from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object (no DB access code).
    """

    user_id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    student_id: Optional[str] = None
    club_id: Optional[int] = None
    is_active: bool = True
    email_verified: bool = False
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login; also the ``actor`` of every use case."""

    user_id: int
    full_name: str
    role: Role
    club_id: Optional[int] = None
