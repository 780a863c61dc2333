from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import AttendanceMethod
from .model import AttendanceRecord, DeviceInfo


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_attendance(
        self,
        *,
        user_id: int,
        event_id: int,
        registration_id: int,
        marked_at: datetime,
        marked_by: int,
        method: AttendanceMethod,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        qr_token: Optional[str] = None,
        device: Optional[DeviceInfo] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Insert a row; raises DuplicateRecordError when the (user, event) pair exists."""

        raise NotImplementedError

    def set_verified(self, attendance_id: int, *, is_verified: bool, notes: Optional[str]) -> bool:
        raise NotImplementedError

    def delete_by_id(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def list_for_event(self, event_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_for_event(self, event_id: int) -> int:
        raise NotImplementedError

    def method_breakdown(self, event_id: int) -> Dict[str, int]:
        raise NotImplementedError

    def count_unique_attendees_for_club(self, club_id: int) -> int:
        """Distinct users with attendance on any event of ``club_id``."""

        raise NotImplementedError
