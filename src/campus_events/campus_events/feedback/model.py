from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from ..common.numbers import round_one_decimal
from ..core.enums import ImprovementArea


@dataclass(frozen=True)
class CategoryRatings:
    content: Optional[int] = None
    organization: Optional[int] = None
    venue: Optional[int] = None
    overall: Optional[int] = None

    def present(self) -> Tuple[int, ...]:
        return tuple(r for r in (self.content, self.organization, self.venue, self.overall) if r is not None)


@dataclass(frozen=True)
class Feedback:
    feedback_id: int
    user_id: int
    event_id: int
    attendance_id: int
    rating: int
    submitted_at: datetime
    comment: Optional[str] = None
    categories: CategoryRatings = field(default_factory=CategoryRatings)
    would_recommend: Optional[bool] = None
    improvements: Tuple[ImprovementArea, ...] = ()
    is_anonymous: bool = False
    is_moderated: bool = False
    moderated_by: Optional[int] = None
    moderated_at: Optional[datetime] = None
    moderation_reason: Optional[str] = None

    @property
    def average_category_rating(self) -> Optional[float]:
        ratings = self.categories.present()
        if not ratings:
            return None
        return round_one_decimal(sum(ratings) / len(ratings))


@dataclass(frozen=True)
class FeedbackSummary:
    """Read-model for the event feedback report."""

    total_feedback: int
    average_rating: float
    category_averages: Dict[str, float]
    rating_distribution: Dict[int, int]
