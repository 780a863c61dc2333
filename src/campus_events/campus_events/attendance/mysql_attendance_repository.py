from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Sequence

from ..core.enums import AttendanceMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, unique_violation_as
from .model import AttendanceRecord, DeviceInfo
from .repository import AttendanceRepository

_COLUMNS = (
    "attendance_id, user_id, event_id, registration_id, marked_at, marked_by, method, latitude, longitude, "
    "qr_token, is_verified, user_agent, ip_address, platform, notes"
)


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        event_id=int(r["event_id"]),
        registration_id=int(r["registration_id"]),
        marked_at=r["marked_at"],
        marked_by=int(r["marked_by"]),
        method=AttendanceMethod(r["method"]),
        latitude=float(r["latitude"]) if r.get("latitude") is not None else None,
        longitude=float(r["longitude"]) if r.get("longitude") is not None else None,
        qr_token=r.get("qr_token"),
        is_verified=bool(r.get("is_verified", True)),
        device=DeviceInfo(
            user_agent=r.get("user_agent"),
            ip_address=r.get("ip_address"),
            platform=r.get("platform"),
        ),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND event_id=%s",
                (int(user_id), int(event_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_attendance(
        self,
        *,
        user_id: int,
        event_id: int,
        registration_id: int,
        marked_at: datetime,
        marked_by: int,
        method: AttendanceMethod,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        qr_token: Optional[str] = None,
        device: Optional[DeviceInfo] = None,
        notes: Optional[str] = None,
    ) -> int:
        device = device or DeviceInfo()
        with unique_violation_as("Attendance already marked for this event"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, event_id, registration_id, marked_at, marked_by, method,
                        latitude, longitude, qr_token, is_verified, user_agent, ip_address, platform, notes
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        int(event_id),
                        int(registration_id),
                        marked_at,
                        int(marked_by),
                        method.value,
                        latitude,
                        longitude,
                        qr_token,
                        device.user_agent,
                        device.ip_address,
                        device.platform,
                        notes,
                    ),
                )
                return int(cur.lastrowid)

    def set_verified(self, attendance_id: int, *, is_verified: bool, notes: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET is_verified=%s, notes=%s WHERE attendance_id=%s",
                (1 if is_verified else 0, notes, int(attendance_id)),
            )
            return cur.rowcount > 0

    def delete_by_id(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0

    def list_for_event(self, event_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE event_id=%s ORDER BY marked_at DESC",
                (int(event_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s ORDER BY marked_at DESC",
                (int(user_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_for_event(self, event_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance_records WHERE event_id=%s", (int(event_id),))
            return int(fetchone(cur)["n"])

    def method_breakdown(self, event_id: int) -> Dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT method, COUNT(*) AS n FROM attendance_records WHERE event_id=%s GROUP BY method",
                (int(event_id),),
            )
            return {r["method"]: int(r["n"]) for r in fetchall(cur)}

    def count_unique_attendees_for_club(self, club_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT ar.user_id) AS n
                FROM attendance_records ar
                JOIN events e ON e.event_id = ar.event_id
                WHERE e.club_id=%s
                """,
                (int(club_id),),
            )
            return int(fetchone(cur)["n"])
