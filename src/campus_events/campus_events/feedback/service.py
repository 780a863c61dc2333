from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from loguru import logger

from ..attendance.repository import AttendanceRepository
from ..common.access import can_manage_club, require_club_manager
from ..common.numbers import round_one_decimal
from ..common.validators import optional_max_length
from ..core.constants import FEEDBACK_COMMENT_MAX_LENGTH, RATING_MAX, RATING_MIN
from ..core.enums import ImprovementArea
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
from .model import CategoryRatings, Feedback, FeedbackSummary
from .repository import FeedbackRepository

CATEGORY_FIELDS = ("content", "organization", "venue", "overall")


def _rating(value, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be a whole number")
    if value < RATING_MIN or value > RATING_MAX:
        raise ValidationError(f"{field_name} must be between {RATING_MIN} and {RATING_MAX}")
    return value


def _categories(raw: Optional[Mapping], rating: int) -> CategoryRatings:
    if raw is not None and not isinstance(raw, Mapping):
        raise ValidationError("Category ratings must be an object")
    raw = dict(raw or {})
    unknown = set(raw) - set(CATEGORY_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown rating categories: {', '.join(sorted(unknown))}")
    values = {
        name: _rating(raw[name], f"{name.capitalize()} rating")
        for name in CATEGORY_FIELDS
        if raw.get(name) is not None
    }
    values.setdefault("overall", rating)
    return CategoryRatings(**values)


def _improvements(raw: Optional[Iterable]) -> tuple:
    if raw is not None and not isinstance(raw, (list, tuple)):
        raise ValidationError("Improvements must be a list")
    areas = []
    for item in raw or ():
        try:
            area = ImprovementArea(str(item).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown improvement area: {item}")
        if area not in areas:
            areas.append(area)
    return tuple(areas)


def summarize(feedback: Sequence[Feedback]) -> FeedbackSummary:
    if not feedback:
        return FeedbackSummary(
            total_feedback=0,
            average_rating=0.0,
            category_averages={},
            rating_distribution={r: 0 for r in range(RATING_MIN, RATING_MAX + 1)},
        )

    category_averages = {}
    for name in CATEGORY_FIELDS:
        values = [getattr(f.categories, name) for f in feedback if getattr(f.categories, name) is not None]
        if values:
            category_averages[name] = round_one_decimal(sum(values) / len(values))

    counts = Counter(f.rating for f in feedback)
    return FeedbackSummary(
        total_feedback=len(feedback),
        average_rating=round_one_decimal(sum(f.rating for f in feedback) / len(feedback)),
        category_averages=category_averages,
        rating_distribution={r: counts.get(r, 0) for r in range(RATING_MIN, RATING_MAX + 1)},
    )


class FeedbackService:
    def __init__(
        self,
        feedback: FeedbackRepository,
        attendance: AttendanceRepository,
        events: EventRepository,
        stats: StatsService,
    ):
        self._feedback = feedback
        self._attendance = attendance
        self._events = events
        self._stats = stats

    def _get_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def _get_feedback(self, feedback_id: int) -> Feedback:
        feedback = self._feedback.get_by_id(int(feedback_id))
        if not feedback:
            raise NotFoundError("Feedback not found")
        return feedback

    def submit(
        self,
        actor: SessionUser,
        event_id: int,
        *,
        rating,
        comment: Optional[str] = None,
        categories: Optional[Mapping] = None,
        would_recommend: Optional[bool] = None,
        improvements: Optional[Iterable] = None,
        is_anonymous: bool = False,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or datetime.now()
        event = self._get_event(event_id)

        attendance = self._attendance.get_for_user_and_event(actor.user_id, event.event_id)
        if not attendance:
            raise PrerequisiteError("You must attend the event before giving feedback")
        if now < event.end_time:
            raise PrerequisiteError("Feedback can only be submitted after the event ends")

        rating = _rating(rating, "Rating")
        category_ratings = _categories(categories, rating)
        areas = _improvements(improvements)
        comment = optional_max_length(comment, "Comment", FEEDBACK_COMMENT_MAX_LENGTH)
        if would_recommend is not None and not isinstance(would_recommend, bool):
            raise ValidationError("Would recommend must be true or false")

        if self._feedback.get_for_user_and_event(actor.user_id, event.event_id):
            raise DuplicateRecordError("You have already submitted feedback for this event")

        feedback_id = self._feedback.create_feedback(
            user_id=actor.user_id,
            event_id=event.event_id,
            attendance_id=attendance.attendance_id,
            rating=rating,
            submitted_at=now,
            comment=comment,
            categories=category_ratings,
            would_recommend=would_recommend,
            improvements=areas,
            is_anonymous=bool(is_anonymous),
        )
        logger.info("Feedback {} submitted for event {}", feedback_id, event.event_id)

        self._stats.refresh_event_stats(event.event_id, now=now)
        return feedback_id

    def delete_feedback(self, actor: SessionUser, feedback_id: int, *, now: Optional[datetime] = None) -> None:
        feedback = self._get_feedback(feedback_id)
        event = self._get_event(feedback.event_id)
        if feedback.user_id != actor.user_id and not can_manage_club(actor, event.club_id):
            raise AuthorizationError("You can only delete your own feedback")

        if not self._feedback.delete_by_id(feedback.feedback_id):
            raise ValidationError("Failed to delete feedback")
        logger.info("Deleted feedback {}", feedback.feedback_id)

        self._stats.refresh_event_stats(event.event_id, now=now)

    def moderate(
        self,
        actor: SessionUser,
        feedback_id: int,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Feedback:
        now = now or datetime.now()
        feedback = self._get_feedback(feedback_id)
        require_club_manager(actor, self._get_event(feedback.event_id).club_id)

        self._feedback.set_moderation(
            feedback.feedback_id,
            is_moderated=True,
            moderated_by=actor.user_id,
            moderated_at=now,
            reason=str(reason or "").strip() or None,
        )
        return self._get_feedback(feedback.feedback_id)

    def unmoderate(self, actor: SessionUser, feedback_id: int) -> Feedback:
        feedback = self._get_feedback(feedback_id)
        require_club_manager(actor, self._get_event(feedback.event_id).club_id)

        self._feedback.set_moderation(
            feedback.feedback_id, is_moderated=False, moderated_by=None, moderated_at=None, reason=None
        )
        return self._get_feedback(feedback.feedback_id)

    def list_for_event(self, viewer: SessionUser, event_id: int) -> Sequence[Feedback]:
        """Managers see everything; everyone else sees feedback that is not moderated."""
        event = self._get_event(event_id)
        rows = self._feedback.list_for_event(event.event_id)
        if can_manage_club(viewer, event.club_id):
            return rows
        return [f for f in rows if not f.is_moderated]

    def feedback_summary(self, event_id: int) -> FeedbackSummary:
        event = self._get_event(event_id)
        return summarize(self._feedback.list_for_event(event.event_id))
