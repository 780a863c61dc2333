from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from ..common.access import require_club_manager, require_role
from ..common.validators import optional_max_length, require_email, require_length_between
from ..core.constants import CLUB_DESCRIPTION_MAX_LENGTH, CLUB_NAME_MAX_LENGTH, CLUB_NAME_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import DuplicateRecordError, NotFoundError
from ..stats.model import ClubStats
from ..stats.service import StatsService
from ..users.model import SessionUser
from .model import Club
from .repository import ClubRepository


class ClubService:
    def __init__(self, clubs: ClubRepository, stats: StatsService):
        self._clubs = clubs
        self._stats = stats

    @staticmethod
    def _clean_email(value: Optional[str]) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return require_email(value, "Contact email")

    def get_club(self, club_id: int) -> Club:
        club = self._clubs.get_by_id(int(club_id))
        if not club:
            raise NotFoundError("Club not found")
        return club

    def list_clubs(self, *, include_inactive: bool = False) -> Sequence[Club]:
        return self._clubs.list_clubs(active_only=not include_inactive)

    def create_club(
        self,
        actor: SessionUser,
        *,
        name: str,
        description: Optional[str] = None,
        contact_email: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> int:
        require_role(actor, Role.SUPER_ADMIN)
        name = require_length_between(name, "Club name", CLUB_NAME_MIN_LENGTH, CLUB_NAME_MAX_LENGTH)
        description = optional_max_length(description, "Description", CLUB_DESCRIPTION_MAX_LENGTH)
        contact_email = self._clean_email(contact_email)

        if self._clubs.get_by_name(name):
            raise DuplicateRecordError("Club name already exists")

        club_id = self._clubs.create_club(name=name, description=description, contact_email=contact_email, logo=logo)
        logger.info("Created club {} ({})", club_id, name)
        return club_id

    def update_club(
        self,
        actor: SessionUser,
        club_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        contact_email: Optional[str] = None,
        logo: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Club:
        club = self.get_club(club_id)
        require_club_manager(actor, club.club_id)
        if is_active is not None and is_active != club.is_active:
            require_role(actor, Role.SUPER_ADMIN)

        new_name = club.name
        if name is not None:
            new_name = require_length_between(name, "Club name", CLUB_NAME_MIN_LENGTH, CLUB_NAME_MAX_LENGTH)
            holder = self._clubs.get_by_name(new_name)
            if holder and holder.club_id != club.club_id:
                raise DuplicateRecordError("Club name already exists")

        self._clubs.update_club(
            club.club_id,
            name=new_name,
            description=(
                optional_max_length(description, "Description", CLUB_DESCRIPTION_MAX_LENGTH)
                if description is not None
                else club.description
            ),
            contact_email=self._clean_email(contact_email) if contact_email is not None else club.contact_email,
            logo=logo if logo is not None else club.logo,
            is_active=club.is_active if is_active is None else bool(is_active),
        )
        return self.get_club(club.club_id)

    def delete_club(self, actor: SessionUser, club_id: int) -> None:
        require_role(actor, Role.SUPER_ADMIN)
        club = self.get_club(club_id)
        self._clubs.delete_by_id(club.club_id)
        logger.info("Deleted club {}", club.club_id)

    def refresh_stats(self, actor: SessionUser, club_id: int) -> ClubStats:
        """On-demand recompute; unlike the write-path refresh, errors surface to the caller."""
        club = self.get_club(club_id)
        require_club_manager(actor, club.club_id)
        return self._stats.recompute_club_stats(club.club_id)
