from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Tuple

from ..core.constants import ATTENDANCE_WINDOW_MINUTES
from ..core.enums import EventCategory, EventStatus, LifecycleStatus, RegistrationWindow
from ..stats.model import EventStats


@dataclass(frozen=True)
class EventDetails:
    """Editable fields of an event (input of create/update)."""

    title: str
    description: str
    start_time: datetime
    end_time: datetime
    location: str
    category: EventCategory
    venue: Optional[str] = None
    max_participants: Optional[int] = None
    registration_deadline: Optional[datetime] = None
    registration_fee: float = 0.0
    is_public: bool = True
    requires_approval: bool = False
    attendance_required: bool = True
    poster: Optional[str] = None
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Event:
    """Domain entity: Event.

    ``stats`` is a cache maintained by the stats service; nothing else writes it.
    """

    event_id: int
    club_id: int
    created_by: int
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    location: str
    category: EventCategory
    status: EventStatus = EventStatus.DRAFT
    venue: Optional[str] = None
    max_participants: Optional[int] = None
    registration_deadline: Optional[datetime] = None
    registration_fee: float = 0.0
    is_public: bool = True
    requires_approval: bool = False
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    attendance_required: bool = True
    poster: Optional[str] = None
    tags: Tuple[str, ...] = ()
    qr_code: Optional[str] = None
    qr_code_expiry: Optional[datetime] = None
    stats: EventStats = field(default_factory=EventStats)
    created_at: Optional[datetime] = None

    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def attendance_opens_at(self) -> datetime:
        return self.start_time - timedelta(minutes=ATTENDANCE_WINDOW_MINUTES)

    @property
    def attendance_closes_at(self) -> datetime:
        return self.end_time + timedelta(minutes=ATTENDANCE_WINDOW_MINUTES)

    def is_full(self) -> bool:
        return bool(self.max_participants) and self.stats.registrations >= self.max_participants

    def registration_window(self, now: datetime) -> RegistrationWindow:
        if self.registration_deadline and now > self.registration_deadline:
            return RegistrationWindow.CLOSED
        if self.is_full():
            return RegistrationWindow.FULL
        return RegistrationWindow.OPEN

    def lifecycle_status(self, now: datetime) -> LifecycleStatus:
        if self.status == EventStatus.CANCELLED:
            return LifecycleStatus.CANCELLED
        if self.status == EventStatus.DRAFT:
            return LifecycleStatus.DRAFT
        if now < self.start_time:
            return LifecycleStatus.UPCOMING
        if now <= self.end_time:
            return LifecycleStatus.ONGOING
        return LifecycleStatus.COMPLETED

    def can_register(self, now: datetime) -> bool:
        if self.status != EventStatus.PUBLISHED:
            return False
        if self.registration_deadline and now > self.registration_deadline:
            return False
        if self.is_full():
            return False
        return now < self.start_time

    def can_mark_attendance(self, now: datetime) -> bool:
        # Lazy completion may already have flipped the status inside the +30 min tail.
        if self.status not in (EventStatus.PUBLISHED, EventStatus.COMPLETED):
            return False
        if not self.attendance_required:
            return False
        return self.attendance_opens_at <= now <= self.attendance_closes_at

    def is_due_for_completion(self, now: datetime) -> bool:
        """Published events flip to completed on their next save after ``end_time``."""
        return self.status == EventStatus.PUBLISHED and now > self.end_time
