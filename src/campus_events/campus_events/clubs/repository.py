from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..stats.model import ClubStats
from .model import Club


class ClubRepository(Protocol):
    def get_by_id(self, club_id: int) -> Optional[Club]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Club]:
        raise NotImplementedError

    def create_club(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        contact_email: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_club(
        self,
        club_id: int,
        *,
        name: str,
        description: Optional[str],
        contact_email: Optional[str],
        logo: Optional[str],
        is_active: bool,
    ) -> bool:
        raise NotImplementedError

    def delete_by_id(self, club_id: int) -> bool:
        """Delete the club with its events; its club admins become students in the same write."""
        raise NotImplementedError

    def list_clubs(self, *, active_only: bool = True) -> Sequence[Club]:
        raise NotImplementedError

    def update_stats(self, club_id: int, stats: ClubStats) -> bool:
        raise NotImplementedError
