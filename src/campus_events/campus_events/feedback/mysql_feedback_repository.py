from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from ..core.enums import ImprovementArea
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, join_csv, split_csv, unique_violation_as
from .model import CategoryRatings, Feedback
from .repository import FeedbackRepository

_COLUMNS = (
    "feedback_id, user_id, event_id, attendance_id, rating, comment, content_rating, organization_rating, "
    "venue_rating, overall_rating, would_recommend, improvements, is_anonymous, submitted_at, "
    "is_moderated, moderated_by, moderated_at, moderation_reason"
)


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _to_feedback(r: dict) -> Feedback:
    would_recommend = r.get("would_recommend")
    return Feedback(
        feedback_id=int(r["feedback_id"]),
        user_id=int(r["user_id"]),
        event_id=int(r["event_id"]),
        attendance_id=int(r["attendance_id"]),
        rating=int(r["rating"]),
        submitted_at=r["submitted_at"],
        comment=r.get("comment"),
        categories=CategoryRatings(
            content=_opt_int(r.get("content_rating")),
            organization=_opt_int(r.get("organization_rating")),
            venue=_opt_int(r.get("venue_rating")),
            overall=_opt_int(r.get("overall_rating")),
        ),
        would_recommend=bool(would_recommend) if would_recommend is not None else None,
        improvements=tuple(ImprovementArea(v) for v in split_csv(r.get("improvements"))),
        is_anonymous=bool(r.get("is_anonymous", False)),
        is_moderated=bool(r.get("is_moderated", False)),
        moderated_by=_opt_int(r.get("moderated_by")),
        moderated_at=r.get("moderated_at"),
        moderation_reason=r.get("moderation_reason"),
    )


class MySQLFeedbackRepository(FeedbackRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, feedback_id: int) -> Optional[Feedback]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM feedback WHERE feedback_id=%s", (int(feedback_id),))
            r = fetchone(cur)
            return _to_feedback(r) if r else None

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[Feedback]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM feedback WHERE user_id=%s AND event_id=%s",
                (int(user_id), int(event_id)),
            )
            r = fetchone(cur)
            return _to_feedback(r) if r else None

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
        categories = categories or CategoryRatings()
        with unique_violation_as("Feedback already submitted for this event"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO feedback(
                        user_id, event_id, attendance_id, rating, comment,
                        content_rating, organization_rating, venue_rating, overall_rating,
                        would_recommend, improvements, is_anonymous, submitted_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        int(event_id),
                        int(attendance_id),
                        int(rating),
                        comment,
                        categories.content,
                        categories.organization,
                        categories.venue,
                        categories.overall,
                        None if would_recommend is None else int(bool(would_recommend)),
                        join_csv(i.value for i in improvements),
                        1 if is_anonymous else 0,
                        submitted_at,
                    ),
                )
                return int(cur.lastrowid)

    def set_moderation(
        self,
        feedback_id: int,
        *,
        is_moderated: bool,
        moderated_by: Optional[int],
        moderated_at: Optional[datetime],
        reason: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE feedback
                SET is_moderated=%s, moderated_by=%s, moderated_at=%s, moderation_reason=%s
                WHERE feedback_id=%s
                """,
                (1 if is_moderated else 0, moderated_by, moderated_at, reason, int(feedback_id)),
            )
            return cur.rowcount > 0

    def delete_by_id(self, feedback_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM feedback WHERE feedback_id=%s", (int(feedback_id),))
            return cur.rowcount > 0

    def list_for_event(self, event_id: int) -> Sequence[Feedback]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM feedback WHERE event_id=%s ORDER BY submitted_at DESC",
                (int(event_id),),
            )
            return [_to_feedback(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int) -> Sequence[Feedback]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM feedback WHERE user_id=%s ORDER BY submitted_at DESC",
                (int(user_id),),
            )
            return [_to_feedback(r) for r in fetchall(cur)]

    def rating_summary(self, event_id: int) -> Tuple[int, Optional[float]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n, AVG(rating) AS avg_rating FROM feedback WHERE event_id=%s",
                (int(event_id),),
            )
            r = fetchone(cur)
            avg = r.get("avg_rating")
            return int(r["n"]), (float(avg) if avg is not None else None)
