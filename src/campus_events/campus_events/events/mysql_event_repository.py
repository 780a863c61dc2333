from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import EventCategory, EventStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    LIKE_ESCAPE,
    db_cursor,
    fetchall,
    fetchone,
    join_csv,
    like_contains,
    split_csv,
    where_clause,
)
from ..stats.model import EventStats
from .model import Event, EventDetails
from .repository import EventRepository

_SEARCH_COLUMNS = ("title", "description", "tags", "location")

_COLUMNS = """
    event_id, club_id, created_by, title, description, start_time, end_time, location, venue,
    max_participants, registration_deadline, registration_fee, status, is_public, requires_approval,
    approved_by, approved_at, attendance_required, poster, category, tags, qr_code, qr_code_expiry,
    stat_registrations, stat_attendance, stat_feedback_count, stat_average_rating, created_at
"""


def _to_event(row: dict) -> Event:
    return Event(
        event_id=int(row["event_id"]),
        club_id=int(row["club_id"]),
        created_by=int(row["created_by"]),
        title=row["title"],
        description=row["description"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        location=row["location"],
        venue=row.get("venue"),
        max_participants=row.get("max_participants"),
        registration_deadline=row.get("registration_deadline"),
        registration_fee=float(row.get("registration_fee") or 0),
        status=EventStatus(row["status"]),
        is_public=bool(row.get("is_public", True)),
        requires_approval=bool(row.get("requires_approval", False)),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        attendance_required=bool(row.get("attendance_required", True)),
        poster=row.get("poster"),
        category=EventCategory(row["category"]),
        tags=split_csv(row.get("tags")),
        qr_code=row.get("qr_code"),
        qr_code_expiry=row.get("qr_code_expiry"),
        stats=EventStats(
            registrations=int(row.get("stat_registrations") or 0),
            attendance=int(row.get("stat_attendance") or 0),
            feedback_count=int(row.get("stat_feedback_count") or 0),
            average_rating=float(row.get("stat_average_rating") or 0),
        ),
        created_at=row.get("created_at"),
    )


def _details_params(d: EventDetails) -> tuple:
    return (
        d.title,
        d.description,
        d.start_time,
        d.end_time,
        d.location,
        d.venue,
        d.max_participants,
        d.registration_deadline,
        d.registration_fee,
        1 if d.is_public else 0,
        1 if d.requires_approval else 0,
        1 if d.attendance_required else 0,
        d.poster,
        d.category.value,
        join_csv(d.tags),
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM events WHERE event_id=%s", (int(event_id),))
            row = fetchone(cur)
            return _to_event(row) if row else None

    def create_event(
        self,
        *,
        club_id: int,
        created_by: int,
        details: EventDetails,
        status: EventStatus = EventStatus.DRAFT,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO events(
                    title, description, start_time, end_time, location, venue,
                    max_participants, registration_deadline, registration_fee,
                    is_public, requires_approval, attendance_required, poster, category, tags,
                    club_id, created_by, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _details_params(details) + (int(club_id), int(created_by), status.value),
            )
            return int(cur.lastrowid)

    def update_details(self, event_id: int, details: EventDetails) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE events
                SET title=%s, description=%s, start_time=%s, end_time=%s, location=%s, venue=%s,
                    max_participants=%s, registration_deadline=%s, registration_fee=%s,
                    is_public=%s, requires_approval=%s, attendance_required=%s, poster=%s,
                    category=%s, tags=%s
                WHERE event_id=%s
                """,
                _details_params(details) + (int(event_id),),
            )
            return cur.rowcount > 0

    def set_status(
        self,
        event_id: int,
        *,
        status: EventStatus,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if approved_by is not None:
                cur.execute(
                    "UPDATE events SET status=%s, approved_by=%s, approved_at=%s WHERE event_id=%s",
                    (status.value, int(approved_by), approved_at, int(event_id)),
                )
            else:
                cur.execute("UPDATE events SET status=%s WHERE event_id=%s", (status.value, int(event_id)))
            return cur.rowcount > 0

    def set_qr_code(self, event_id: int, *, qr_code: str, qr_code_expiry: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE events SET qr_code=%s, qr_code_expiry=%s WHERE event_id=%s",
                (qr_code, qr_code_expiry, int(event_id)),
            )
            return cur.rowcount > 0

    def update_stats(self, event_id: int, stats: EventStats) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE events
                SET stat_registrations=%s, stat_attendance=%s, stat_feedback_count=%s, stat_average_rating=%s
                WHERE event_id=%s
                """,
                (stats.registrations, stats.attendance, stats.feedback_count, stats.average_rating, int(event_id)),
            )
            return cur.rowcount > 0

    def delete_by_id(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM events WHERE event_id=%s", (int(event_id),))
            return cur.rowcount > 0

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
        where, params = where_clause(
            [
                ("status=%s", status.value if status else None),
                ("club_id=%s", club_id),
                ("category=%s", category.value if category else None),
                ("is_public=%s", 1 if public_only else None),
                ("start_time>%s", starts_after),
            ]
        )
        if search:
            like = like_contains(search.strip())
            search_sql = "(" + " OR ".join(f"{c} LIKE %s ESCAPE '{LIKE_ESCAPE}'" for c in _SEARCH_COLUMNS) + ")"
            where = f"{where} AND {search_sql}" if where else f"WHERE {search_sql}"
            params = params + (like,) * len(_SEARCH_COLUMNS)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM events {where} ORDER BY start_time ASC LIMIT %s",
                params + (int(limit),),
            )
            return [_to_event(r) for r in fetchall(cur)]

    def list_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT event_id FROM events ORDER BY event_id")
            return [int(r["event_id"]) for r in fetchall(cur)]

    def count_active_for_club(self, club_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM events WHERE club_id=%s AND status<>%s",
                (int(club_id), EventStatus.CANCELLED.value),
            )
            return int(fetchone(cur)["n"])
