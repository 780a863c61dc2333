from __future__ import annotations

import secrets
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Sequence

from loguru import logger

from ..clubs.repository import ClubRepository
from ..common.access import can_manage_club, require_club_manager, require_role
from ..common.validators import optional_max_length, require_length_between, require_non_empty
from ..core.constants import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_QR_CODE_TTL_MINUTES,
    EVENT_DESCRIPTION_MAX_LENGTH,
    EVENT_DESCRIPTION_MIN_LENGTH,
    EVENT_LOCATION_MAX_LENGTH,
    EVENT_TITLE_MAX_LENGTH,
    EVENT_TITLE_MIN_LENGTH,
    EVENT_VENUE_MAX_LENGTH,
)
from ..core.enums import EventCategory, EventStatus, Role
from ..core.exceptions import NotFoundError, PrerequisiteError, ValidationError
from ..stats.service import StatsService
from ..users.model import SessionUser
from .model import Event, EventDetails
from .repository import EventRepository

_EDITABLE_STATUSES = (EventStatus.DRAFT, EventStatus.PUBLISHED)


def details_of(event: Event) -> EventDetails:
    return EventDetails(
        title=event.title,
        description=event.description,
        start_time=event.start_time,
        end_time=event.end_time,
        location=event.location,
        category=event.category,
        venue=event.venue,
        max_participants=event.max_participants,
        registration_deadline=event.registration_deadline,
        registration_fee=event.registration_fee,
        is_public=event.is_public,
        requires_approval=event.requires_approval,
        attendance_required=event.attendance_required,
        poster=event.poster,
        tags=event.tags,
    )


def normalize_tags(tags) -> tuple:
    seen = []
    for tag in tags or ():
        tag = str(tag).strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


class EventService:
    def __init__(
        self,
        events: EventRepository,
        clubs: ClubRepository,
        stats: StatsService,
        *,
        qr_code_ttl_minutes: int = DEFAULT_QR_CODE_TTL_MINUTES,
    ):
        self._events = events
        self._clubs = clubs
        self._stats = stats
        self._qr_ttl = timedelta(minutes=int(qr_code_ttl_minutes))

    # ---- reads ----

    def get_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def get_visible_event(self, viewer: Optional[SessionUser], event_id: int) -> Event:
        """Drafts are only visible to staff; private events only to signed-in users."""
        event = self.get_event(event_id)
        if self._is_staff_for(viewer, event.club_id):
            return event
        if event.status == EventStatus.DRAFT or (viewer is None and not event.is_public):
            raise NotFoundError("Event not found")
        return event

    def list_events(
        self,
        viewer: Optional[SessionUser] = None,
        *,
        status: Optional[EventStatus] = None,
        club_id: Optional[int] = None,
        category: Optional[EventCategory] = None,
        upcoming_only: bool = False,
        search: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        now: Optional[datetime] = None,
    ) -> Sequence[Event]:
        now = now or datetime.now()
        if not self._is_staff_for(viewer, club_id) and status not in (EventStatus.PUBLISHED, EventStatus.COMPLETED):
            status = EventStatus.PUBLISHED

        return self._events.list_events(
            status=status,
            club_id=club_id,
            category=category,
            public_only=viewer is None,
            starts_after=now if upcoming_only else None,
            search=(search or "").strip() or None,
            limit=max(1, min(int(limit), DEFAULT_LIST_LIMIT)),
        )

    @staticmethod
    def _is_staff_for(viewer: Optional[SessionUser], club_id: Optional[int]) -> bool:
        if viewer is None:
            return False
        if viewer.role in (Role.SUPER_ADMIN, Role.FACULTY):
            return True
        return can_manage_club(viewer, club_id)

    # ---- writes ----

    def _validate(self, details: EventDetails, *, now: datetime, check_start: bool) -> EventDetails:
        title = require_length_between(details.title, "Title", EVENT_TITLE_MIN_LENGTH, EVENT_TITLE_MAX_LENGTH)
        description = require_length_between(
            details.description, "Description", EVENT_DESCRIPTION_MIN_LENGTH, EVENT_DESCRIPTION_MAX_LENGTH
        )
        location = require_non_empty(details.location, "Location")
        if len(location) > EVENT_LOCATION_MAX_LENGTH:
            raise ValidationError(f"Location cannot exceed {EVENT_LOCATION_MAX_LENGTH} characters")
        venue = optional_max_length(details.venue, "Venue", EVENT_VENUE_MAX_LENGTH)

        if not isinstance(details.start_time, datetime) or not isinstance(details.end_time, datetime):
            raise ValidationError("Start time and end time are required")
        if check_start and details.start_time <= now:
            raise ValidationError("Event start time must be in the future")
        if details.end_time <= details.start_time:
            raise ValidationError("End time must be after start time")
        if details.registration_deadline and details.registration_deadline > details.start_time:
            raise ValidationError("Registration deadline must be before event start time")

        if details.max_participants is not None:
            if isinstance(details.max_participants, bool) or int(details.max_participants) < 1:
                raise ValidationError("Maximum participants must be at least 1")
        if details.registration_fee is None or float(details.registration_fee) < 0:
            raise ValidationError("Registration fee cannot be negative")
        if not isinstance(details.category, EventCategory):
            raise ValidationError("Invalid event category")

        return replace(
            details,
            title=title,
            description=description,
            location=location,
            venue=venue,
            max_participants=None if details.max_participants is None else int(details.max_participants),
            registration_fee=float(details.registration_fee),
            tags=normalize_tags(details.tags),
        )

    def _complete_if_due(self, event: Event, now: datetime) -> None:
        if event.is_due_for_completion(now):
            self._events.set_status(event.event_id, status=EventStatus.COMPLETED)
            logger.info("Event {} marked completed", event.event_id)

    def create_event(
        self,
        actor: SessionUser,
        *,
        club_id: int,
        details: EventDetails,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or datetime.now()
        require_club_manager(actor, int(club_id))
        club = self._clubs.get_by_id(int(club_id))
        if not club:
            raise NotFoundError("Club not found")
        if not club.is_active:
            raise ValidationError("Club is not active")

        details = self._validate(details, now=now, check_start=True)
        event_id = self._events.create_event(club_id=club.club_id, created_by=actor.user_id, details=details)
        logger.info("Created event {} for club {}", event_id, club.club_id)

        self._stats.refresh_club_stats(club.club_id)
        return event_id

    def update_event(
        self,
        actor: SessionUser,
        event_id: int,
        changes: Mapping[str, Any],
        *,
        now: Optional[datetime] = None,
    ) -> Event:
        """Apply a partial update; ``changes`` keys are ``EventDetails`` field names."""
        now = now or datetime.now()
        event = self.get_event(event_id)
        require_club_manager(actor, event.club_id)
        if event.status not in _EDITABLE_STATUSES:
            raise ValidationError(f"A {event.status.value} event cannot be edited")

        try:
            merged = replace(details_of(event), **dict(changes))
        except TypeError:
            raise ValidationError("Unknown event field")

        start_changed = merged.start_time != event.start_time
        details = self._validate(merged, now=now, check_start=start_changed)
        if details.max_participants is not None and details.max_participants < event.stats.registrations:
            raise ValidationError("Maximum participants cannot be lower than current registrations")

        self._events.update_details(event.event_id, details)
        self._complete_if_due(self.get_event(event.event_id), now)

        self._stats.refresh_club_stats(event.club_id)
        return self.get_event(event.event_id)

    def publish_event(self, actor: SessionUser, event_id: int, *, now: Optional[datetime] = None) -> Event:
        now = now or datetime.now()
        event = self.get_event(event_id)
        if event.status != EventStatus.DRAFT:
            raise ValidationError("Only draft events can be published")

        approved_by = None
        approved_at = None
        if event.requires_approval:
            require_role(actor, Role.FACULTY, Role.SUPER_ADMIN)
            approved_by, approved_at = actor.user_id, now
        else:
            require_club_manager(actor, event.club_id)
        if event.end_time <= now:
            raise PrerequisiteError("Event has already ended")

        self._events.set_status(
            event.event_id,
            status=EventStatus.PUBLISHED,
            approved_by=approved_by,
            approved_at=approved_at,
        )
        logger.info("Event {} published by {}", event.event_id, actor.user_id)

        self._stats.refresh_club_stats(event.club_id)
        return self.get_event(event.event_id)

    def cancel_event(self, actor: SessionUser, event_id: int, *, now: Optional[datetime] = None) -> Event:
        now = now or datetime.now()
        event = self.get_event(event_id)
        require_club_manager(actor, event.club_id)
        if event.status not in _EDITABLE_STATUSES or event.is_due_for_completion(now):
            raise ValidationError("Only draft or upcoming published events can be cancelled")

        self._events.set_status(event.event_id, status=EventStatus.CANCELLED)
        logger.info("Event {} cancelled by {}", event.event_id, actor.user_id)

        self._stats.refresh_club_stats(event.club_id)
        return self.get_event(event.event_id)

    def delete_event(self, actor: SessionUser, event_id: int) -> None:
        event = self.get_event(event_id)
        require_club_manager(actor, event.club_id)

        if not self._events.delete_by_id(event.event_id):
            raise ValidationError("Failed to delete event")
        logger.info("Deleted event {}", event.event_id)

        self._stats.refresh_club_stats(event.club_id)

    def generate_qr_code(self, actor: SessionUser, event_id: int, *, now: Optional[datetime] = None) -> Event:
        """Issue a fresh check-in token; it replaces any previous one."""
        now = now or datetime.now()
        event = self.get_event(event_id)
        require_club_manager(actor, event.club_id)
        if event.status not in (EventStatus.PUBLISHED, EventStatus.COMPLETED):
            raise PrerequisiteError("QR codes are only available for published events")
        if not event.attendance_required:
            raise ValidationError("This event does not track attendance")
        if now > event.attendance_closes_at:
            raise PrerequisiteError("The attendance window for this event has closed")

        token = secrets.token_urlsafe(24)
        expiry = min(now + self._qr_ttl, event.attendance_closes_at)
        self._events.set_qr_code(event.event_id, qr_code=token, qr_code_expiry=expiry)
        self._complete_if_due(event, now)

        return self.get_event(event.event_id)
