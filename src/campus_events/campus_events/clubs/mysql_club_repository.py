from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, unique_violation_as
from ..stats.model import ClubStats
from .model import Club
from .repository import ClubRepository

_COLUMNS = (
    "club_id, name, description, logo, contact_email, is_active, "
    "stat_total_events, stat_total_members, stat_total_attendees, created_at"
)


def _to_club(row: dict) -> Club:
    return Club(
        club_id=int(row["club_id"]),
        name=row["name"],
        description=row.get("description"),
        logo=row.get("logo"),
        contact_email=row.get("contact_email"),
        is_active=bool(row.get("is_active", True)),
        stats=ClubStats(
            total_events=int(row.get("stat_total_events") or 0),
            total_members=int(row.get("stat_total_members") or 0),
            total_attendees=int(row.get("stat_total_attendees") or 0),
        ),
        created_at=row.get("created_at"),
    )


class MySQLClubRepository(ClubRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, club_id: int) -> Optional[Club]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clubs WHERE club_id=%s", (int(club_id),))
            row = fetchone(cur)
            return _to_club(row) if row else None

    def get_by_name(self, name: str) -> Optional[Club]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clubs WHERE name=%s", (name,))
            row = fetchone(cur)
            return _to_club(row) if row else None

    def create_club(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        contact_email: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> int:
        with unique_violation_as("Club name already exists"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO clubs(name, description, contact_email, logo) VALUES(%s,%s,%s,%s)",
                    (name, description, contact_email, logo),
                )
                return int(cur.lastrowid)

    def update_club(
        self,
        club_id: int,
        *,
        name: str,
        description: Optional[str],
        contact_email: Optional[str],
        logo: Optional[str],
        is_active: bool,
    ) -> bool:
        with unique_violation_as("Club name already exists"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE clubs
                    SET name=%s, description=%s, contact_email=%s, logo=%s, is_active=%s
                    WHERE club_id=%s
                    """,
                    (name, description, contact_email, logo, 1 if is_active else 0, int(club_id)),
                )
                return cur.rowcount > 0

    def delete_by_id(self, club_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET role=%s, club_id=NULL WHERE club_id=%s AND role=%s",
                (Role.STUDENT.value, int(club_id), Role.CLUB_ADMIN.value),
            )
            cur.execute("DELETE FROM clubs WHERE club_id=%s", (int(club_id),))
            return cur.rowcount > 0

    def list_clubs(self, *, active_only: bool = True) -> Sequence[Club]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clubs {where} ORDER BY name ASC")
            return [_to_club(r) for r in fetchall(cur)]

    def update_stats(self, club_id: int, stats: ClubStats) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE clubs
                SET stat_total_events=%s, stat_total_members=%s, stat_total_attendees=%s
                WHERE club_id=%s
                """,
                (stats.total_events, stats.total_members, stats.total_attendees, int(club_id)),
            )
            return cur.rowcount > 0
