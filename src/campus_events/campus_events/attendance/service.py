"""Attendance use cases: QR self check-in, manual and bulk marking, reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from ..common.access import can_manage_club, require_club_manager
from ..common.numbers import round_one_decimal
from ..common.validators import optional_max_length, require_in_range
from ..core.constants import ATTENDANCE_NOTES_MAX_LENGTH, ATTENDANCE_WINDOW_MINUTES
from ..core.enums import AttendanceMethod, Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    DuplicateRecordError,
    NotFoundError,
    PrerequisiteError,
    ValidationError,
)
from ..events.model import Event
from ..events.repository import EventRepository
from ..registrations.repository import RegistrationRepository
from ..stats.service import StatsService
from ..users.model import SessionUser
from .model import AttendanceRecord, AttendanceSummary, DeviceInfo
from .repository import AttendanceRepository


@dataclass(frozen=True)
class BulkAttendanceResult:
    marked: List[int] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        registrations: RegistrationRepository,
        events: EventRepository,
        stats: StatsService,
    ):
        self._attendance = attendance
        self._registrations = registrations
        self._events = events
        self._stats = stats

    def _get_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def _get_record(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _refresh(self, event: Event, now: datetime) -> None:
        self._stats.refresh_event_stats(event.event_id, now=now)
        self._stats.refresh_club_stats(event.club_id)

    def _mark(
        self,
        event: Event,
        *,
        user_id: int,
        marked_by: int,
        method: AttendanceMethod,
        now: datetime,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        qr_token: Optional[str] = None,
        device: Optional[DeviceInfo] = None,
        notes: Optional[str] = None,
    ) -> int:
        if not event.attendance_required:
            raise ValidationError("This event does not track attendance")
        if latitude is not None:
            require_in_range(latitude, "Latitude", -90, 90)
        if longitude is not None:
            require_in_range(longitude, "Longitude", -180, 180)
        notes = optional_max_length(notes, "Notes", ATTENDANCE_NOTES_MAX_LENGTH)

        registration = self._registrations.get_for_user_and_event(user_id, event.event_id)
        if not registration or not registration.is_active:
            raise PrerequisiteError("User is not registered for this event")
        if not event.can_mark_attendance(now):
            raise PrerequisiteError(
                f"Attendance can only be marked from {ATTENDANCE_WINDOW_MINUTES} minutes before the start "
                f"until {ATTENDANCE_WINDOW_MINUTES} minutes after the end of a published event"
            )
        if self._attendance.get_for_user_and_event(user_id, event.event_id):
            raise DuplicateRecordError("Attendance already marked for this event")

        attendance_id = self._attendance.create_attendance(
            user_id=user_id,
            event_id=event.event_id,
            registration_id=registration.registration_id,
            marked_at=now,
            marked_by=marked_by,
            method=method,
            latitude=latitude,
            longitude=longitude,
            qr_token=qr_token,
            device=device,
            notes=notes,
        )
        logger.info("Attendance {} marked for user {} at event {} ({})", attendance_id, user_id, event.event_id, method.value)
        return attendance_id

    def check_in_with_qr(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        qr_token: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        device: Optional[DeviceInfo] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Self check-in: the scanning user is always the attendee."""
        now = now or datetime.now()
        event = self._get_event(event_id)
        token = str(qr_token or "").strip()
        if not token or not event.qr_code or token != event.qr_code:
            raise ValidationError("Invalid QR code")
        if event.qr_code_expiry is None or now > event.qr_code_expiry:
            raise ValidationError("QR code has expired")

        attendance_id = self._mark(
            event,
            user_id=actor.user_id,
            marked_by=actor.user_id,
            method=AttendanceMethod.QR_SCAN,
            now=now,
            latitude=latitude,
            longitude=longitude,
            qr_token=token,
            device=device,
        )
        self._refresh(event, now)
        return attendance_id

    def mark_manual(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        user_id: int,
        notes: Optional[str] = None,
        device: Optional[DeviceInfo] = None,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or datetime.now()
        event = self._get_event(event_id)
        require_club_manager(actor, event.club_id)

        attendance_id = self._mark(
            event,
            user_id=int(user_id),
            marked_by=actor.user_id,
            method=AttendanceMethod.MANUAL,
            now=now,
            device=device,
            notes=notes,
        )
        self._refresh(event, now)
        return attendance_id

    def mark_bulk(
        self,
        actor: SessionUser,
        event_id: int,
        user_ids: Iterable[int],
        *,
        now: Optional[datetime] = None,
    ) -> BulkAttendanceResult:
        """Mark many users; a failing user is reported, not fatal. Stats refresh once."""
        now = now or datetime.now()
        event = self._get_event(event_id)
        require_club_manager(actor, event.club_id)

        result = BulkAttendanceResult()
        for raw_id in user_ids:
            try:
                user_id = int(raw_id)
            except (TypeError, ValueError):
                result.failed[str(raw_id)] = "Invalid user id"
                continue
            if user_id in result.marked or str(user_id) in result.failed:
                continue
            try:
                self._mark(
                    event,
                    user_id=user_id,
                    marked_by=actor.user_id,
                    method=AttendanceMethod.BULK_UPLOAD,
                    now=now,
                )
            except DomainError as e:
                result.failed[str(user_id)] = str(e)
            else:
                result.marked.append(user_id)

        if result.marked:
            self._refresh(event, now)
        return result

    def set_verified(
        self,
        actor: SessionUser,
        attendance_id: int,
        *,
        is_verified: bool,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        record = self._get_record(attendance_id)
        event = self._get_event(record.event_id)
        require_club_manager(actor, event.club_id)

        notes = optional_max_length(notes, "Notes", ATTENDANCE_NOTES_MAX_LENGTH)
        self._attendance.set_verified(record.attendance_id, is_verified=bool(is_verified), notes=notes or record.notes)
        return self._get_record(record.attendance_id)

    def delete_attendance(self, actor: SessionUser, attendance_id: int, *, now: Optional[datetime] = None) -> None:
        record = self._get_record(attendance_id)
        event = self._get_event(record.event_id)
        require_club_manager(actor, event.club_id)

        if not self._attendance.delete_by_id(record.attendance_id):
            raise ValidationError("Failed to delete attendance record")
        logger.info("Deleted attendance {}", record.attendance_id)

        self._refresh(event, now or datetime.now())

    def _require_report_access(self, actor: SessionUser, event: Event) -> None:
        if actor.role != Role.FACULTY and not can_manage_club(actor, event.club_id):
            raise AuthorizationError("You do not have permission to view attendance")

    def list_for_event(self, actor: SessionUser, event_id: int) -> Sequence[AttendanceRecord]:
        event = self._get_event(event_id)
        self._require_report_access(actor, event)
        return self._attendance.list_for_event(event.event_id)

    def list_for_user(self, actor: SessionUser) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_user(actor.user_id)

    def attendance_summary(self, actor: SessionUser, event_id: int) -> AttendanceSummary:
        event = self._get_event(event_id)
        self._require_report_access(actor, event)

        total_registrations = self._registrations.count_registered(event.event_id)
        total_attendance = self._attendance.count_for_event(event.event_id)
        rate = round_one_decimal(total_attendance / total_registrations * 100) if total_registrations else 0.0
        return AttendanceSummary(
            total_registrations=total_registrations,
            total_attendance=total_attendance,
            attendance_rate=rate,
            method_breakdown=dict(self._attendance.method_breakdown(event.event_id)),
        )
