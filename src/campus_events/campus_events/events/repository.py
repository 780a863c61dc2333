from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EventCategory, EventStatus
from ..stats.model import EventStats
from .model import Event, EventDetails


class EventRepository(Protocol):
    def get_by_id(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def create_event(
        self,
        *,
        club_id: int,
        created_by: int,
        details: EventDetails,
        status: EventStatus = EventStatus.DRAFT,
    ) -> int:
        raise NotImplementedError

    def update_details(self, event_id: int, details: EventDetails) -> bool:
        raise NotImplementedError

    def set_status(
        self,
        event_id: int,
        *,
        status: EventStatus,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> bool:
        raise NotImplementedError

    def set_qr_code(self, event_id: int, *, qr_code: str, qr_code_expiry: datetime) -> bool:
        raise NotImplementedError

    def update_stats(self, event_id: int, stats: EventStats) -> bool:
        raise NotImplementedError

    def delete_by_id(self, event_id: int) -> bool:
        raise NotImplementedError

    def list_events(
        self,
        *,
        status: Optional[EventStatus] = None,
        club_id: Optional[int] = None,
        category: Optional[EventCategory] = None,
        public_only: bool = False,
        starts_after: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[Event]:
        raise NotImplementedError

    def list_ids(self) -> Sequence[int]:
        raise NotImplementedError

    def count_active_for_club(self, club_id: int) -> int:
        """Events of ``club_id`` whose status is not cancelled."""

        raise NotImplementedError
