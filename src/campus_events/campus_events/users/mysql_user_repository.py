from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    referenced_row_as,
    unique_violation_as,
    where_clause,
)
from .model import User
from .repository import UserRepository

_COLUMNS = (
    "user_id, email, password_hash, first_name, last_name, student_id, role, club_id, "
    "is_active, email_verified, created_at"
)


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=Role(row["role"]),
        student_id=row.get("student_id"),
        club_id=row.get("club_id"),
        is_active=bool(row.get("is_active", True)),
        email_verified=bool(row.get("email_verified", False)),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, column: str, value) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {column}=%s", (value,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email", email.lower())

    def get_by_student_id(self, student_id: str) -> Optional[User]:
        return self._get_one("student_id", student_id)

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role,
        student_id: Optional[str] = None,
        club_id: Optional[int] = None,
    ) -> int:
        with unique_violation_as("Email or student ID is already registered"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(email, password_hash, first_name, last_name, student_id, role, club_id, is_active)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                    """,
                    (email, password_hash, first_name, last_name, student_id, role.value, club_id),
                )
                return int(cur.lastrowid)

    def update_profile(self, user_id: int, *, first_name: str, last_name: str, student_id: Optional[str]) -> bool:
        with unique_violation_as("Student ID is already registered"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "UPDATE users SET first_name=%s, last_name=%s, student_id=%s WHERE user_id=%s",
                    (first_name, last_name, student_id, int(user_id)),
                )
                return cur.rowcount > 0

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def update_role(self, user_id: int, *, role: Role, club_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET role=%s, club_id=%s WHERE user_id=%s",
                (role.value, club_id, int(user_id)),
            )
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, int(user_id)))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with referenced_row_as("User still owns events and cannot be deleted"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
                return cur.rowcount > 0

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        club_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Sequence[User]:
        where, params = where_clause(
            [
                ("role=%s", role.value if role else None),
                ("club_id=%s", club_id),
                ("is_active=%s", 1 if active_only else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users {where} ORDER BY user_id DESC", params)
            return [_to_user(r) for r in fetchall(cur)]

    def count_club_admins(self, club_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM users WHERE club_id=%s AND role=%s AND is_active=1",
                (int(club_id), Role.CLUB_ADMIN.value),
            )
            return int(fetchone(cur)["n"])
