from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from ..common.access import can_manage_club, require_club_manager
from ..core.enums import EventStatus, PaymentStatus, RegistrationStatus, RegistrationWindow, Role
from ..core.exceptions import (
    AuthorizationError,
    DuplicateRecordError,
    NotFoundError,
    PrerequisiteError,
    ValidationError,
)
from ..events.model import Event
from ..events.repository import EventRepository
from ..stats.service import StatsService
from ..users.model import SessionUser
from ..users.repository import UserRepository
from .model import Registration
from .repository import RegistrationRepository


def _registration_blocker(event: Event, now: datetime) -> Optional[str]:
    if event.can_register(now):
        return None
    if event.status != EventStatus.PUBLISHED:
        return "Event is not open for registration"
    window = event.registration_window(now)
    if window == RegistrationWindow.CLOSED:
        return "Registration deadline has passed"
    if window == RegistrationWindow.FULL:
        return "Event is full"
    return "Event has already started"


def _clean_additional_info(info: Optional[Mapping]) -> Dict[str, str]:
    if info is None:
        return {}
    if not isinstance(info, Mapping):
        raise ValidationError("Additional info must be an object")
    cleaned = {}
    for key, value in info.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationError("Additional info values must be text")
        cleaned[key.strip()] = value.strip()
    return cleaned


class RegistrationService:
    def __init__(
        self,
        registrations: RegistrationRepository,
        events: EventRepository,
        users: UserRepository,
        stats: StatsService,
    ):
        self._registrations = registrations
        self._events = events
        self._users = users
        self._stats = stats

    def _get_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def get_registration(self, registration_id: int) -> Registration:
        registration = self._registrations.get_by_id(int(registration_id))
        if not registration:
            raise NotFoundError("Registration not found")
        return registration

    def register(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        additional_info: Optional[Mapping] = None,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or datetime.now()
        event = self._get_event(event_id)

        user = self._users.get_by_id(actor.user_id)
        if not user or not user.is_active:
            raise PrerequisiteError("Your account is not active")

        if self._registrations.get_for_user_and_event(user.user_id, event.event_id):
            raise DuplicateRecordError("You are already registered for this event")

        blocker = _registration_blocker(event, now)
        if blocker:
            raise PrerequisiteError(blocker)

        has_fee = event.registration_fee > 0
        registration_id = self._registrations.create_registration(
            user_id=user.user_id,
            event_id=event.event_id,
            registered_at=now,
            status=RegistrationStatus.REGISTERED,
            payment_status=PaymentStatus.PENDING if has_fee else PaymentStatus.NOT_REQUIRED,
            payment_amount=event.registration_fee if has_fee else 0.0,
            additional_info=_clean_additional_info(additional_info),
        )
        logger.info("User {} registered for event {}", user.user_id, event.event_id)

        self._stats.refresh_event_stats(event.event_id, now=now)
        return registration_id

    def cancel(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Registration:
        now = now or datetime.now()
        event = self._get_event(event_id)
        registration = self._registrations.get_for_user_and_event(actor.user_id, event.event_id)
        if not registration:
            raise NotFoundError("Registration not found")
        if registration.status not in (RegistrationStatus.REGISTERED, RegistrationStatus.WAITLISTED):
            raise ValidationError("Registration is already cancelled")
        if now >= event.start_time:
            raise PrerequisiteError("Cannot cancel registration after the event has started")

        reason = str(reason or "").strip() or None
        self._registrations.cancel(registration.registration_id, cancelled_at=now, reason=reason)
        logger.info("User {} cancelled registration for event {}", actor.user_id, event.event_id)

        self._stats.refresh_event_stats(event.event_id, now=now)
        return self.get_registration(registration.registration_id)

    def delete_registration(
        self, actor: SessionUser, registration_id: int, *, now: Optional[datetime] = None
    ) -> None:
        registration = self.get_registration(registration_id)
        event = self._get_event(registration.event_id)
        require_club_manager(actor, event.club_id)

        if not self._registrations.delete_by_id(registration.registration_id):
            raise ValidationError("Failed to delete registration")
        logger.info("Deleted registration {}", registration.registration_id)

        # Attendance and feedback rows cascade with the registration.
        self._stats.refresh_event_stats(event.event_id, now=now)
        self._stats.refresh_club_stats(event.club_id)

    def record_payment(
        self,
        actor: SessionUser,
        registration_id: int,
        *,
        payment_status: PaymentStatus,
        payment_id: Optional[str] = None,
        payment_amount: Optional[float] = None,
    ) -> Registration:
        registration = self.get_registration(registration_id)
        event = self._get_event(registration.event_id)
        require_club_manager(actor, event.club_id)

        try:
            amount = registration.payment_amount if payment_amount is None else float(payment_amount)
        except (TypeError, ValueError):
            raise ValidationError("Payment amount must be a number")
        if amount < 0:
            raise ValidationError("Payment amount cannot be negative")

        self._registrations.update_payment(
            registration.registration_id,
            payment_status=payment_status,
            payment_id=str(payment_id or "").strip() or None,
            payment_amount=amount,
        )
        return self.get_registration(registration.registration_id)

    def list_for_event(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        status: Optional[RegistrationStatus] = None,
    ) -> Sequence[Registration]:
        event = self._get_event(event_id)
        if actor.role != Role.FACULTY and not can_manage_club(actor, event.club_id):
            raise AuthorizationError("You do not have permission to view registrations")
        return self._registrations.list_for_event(event.event_id, status=status)

    def my_events(
        self,
        actor: SessionUser,
        *,
        status: Optional[RegistrationStatus] = None,
    ) -> List[Tuple[Registration, Event]]:
        rows = []
        for registration in self._registrations.list_for_user(actor.user_id, status=status):
            event = self._events.get_by_id(registration.event_id)
            if event:
                rows.append((registration, event))
        return rows
