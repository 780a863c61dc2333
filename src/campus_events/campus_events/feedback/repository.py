from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import ImprovementArea
from .model import CategoryRatings, Feedback


class FeedbackRepository(Protocol):
    def get_by_id(self, feedback_id: int) -> Optional[Feedback]:
        raise NotImplementedError

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[Feedback]:
        raise NotImplementedError

    def create_feedback(
        self,
        *,
        user_id: int,
        event_id: int,
        attendance_id: int,
        rating: int,
        submitted_at: datetime,
        comment: Optional[str] = None,
        categories: Optional[CategoryRatings] = None,
        would_recommend: Optional[bool] = None,
        improvements: Tuple[ImprovementArea, ...] = (),
        is_anonymous: bool = False,
    ) -> int:
        """Insert a row; raises DuplicateRecordError when the (user, event) pair exists."""

        raise NotImplementedError

    def set_moderation(
        self,
        feedback_id: int,
        *,
        is_moderated: bool,
        moderated_by: Optional[int],
        moderated_at: Optional[datetime],
        reason: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def delete_by_id(self, feedback_id: int) -> bool:
        raise NotImplementedError

    def list_for_event(self, event_id: int) -> Sequence[Feedback]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Feedback]:
        raise NotImplementedError

    def rating_summary(self, event_id: int) -> Tuple[int, Optional[float]]:
        """(count, unrounded mean rating) over the feedback rows of ``event_id``."""

        raise NotImplementedError
