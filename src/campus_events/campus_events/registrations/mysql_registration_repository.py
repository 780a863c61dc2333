from __future__ import annotations

import json
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..core.enums import PaymentStatus, RegistrationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, unique_violation_as, where_clause
from .model import Registration
from .repository import RegistrationRepository

_COLUMNS = (
    "registration_id, user_id, event_id, registered_at, status, payment_status, payment_id, "
    "payment_amount, additional_info, cancelled_at, cancellation_reason"
)


def _load_info(value) -> Dict[str, str]:
    if not value:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return {str(k): str(v) for k, v in dict(value).items()}


def _to_registration(row: dict) -> Registration:
    return Registration(
        registration_id=int(row["registration_id"]),
        user_id=int(row["user_id"]),
        event_id=int(row["event_id"]),
        registered_at=row["registered_at"],
        status=RegistrationStatus(row["status"]),
        payment_status=PaymentStatus(row["payment_status"]),
        payment_id=row.get("payment_id"),
        payment_amount=float(row.get("payment_amount") or 0),
        additional_info=_load_info(row.get("additional_info")),
        cancelled_at=row.get("cancelled_at"),
        cancellation_reason=row.get("cancellation_reason"),
    )


class MySQLRegistrationRepository(RegistrationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM registrations WHERE registration_id=%s", (int(registration_id),))
            row = fetchone(cur)
            return _to_registration(row) if row else None

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM registrations WHERE user_id=%s AND event_id=%s",
                (int(user_id), int(event_id)),
            )
            row = fetchone(cur)
            return _to_registration(row) if row else None

    def create_registration(
        self,
        *,
        user_id: int,
        event_id: int,
        registered_at: datetime,
        status: RegistrationStatus = RegistrationStatus.REGISTERED,
        payment_status: PaymentStatus = PaymentStatus.NOT_REQUIRED,
        payment_amount: float = 0.0,
        additional_info: Optional[Dict[str, str]] = None,
    ) -> int:
        info = json.dumps(additional_info) if additional_info else None
        with unique_violation_as("User is already registered for this event"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO registrations(
                        user_id, event_id, registered_at, status, payment_status, payment_amount, additional_info
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (int(user_id), int(event_id), registered_at, status.value, payment_status.value, payment_amount, info),
                )
                return int(cur.lastrowid)

    def cancel(self, registration_id: int, *, cancelled_at: datetime, reason: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE registrations
                SET status=%s, cancelled_at=COALESCE(cancelled_at, %s), cancellation_reason=%s
                WHERE registration_id=%s
                """,
                (RegistrationStatus.CANCELLED.value, cancelled_at, reason, int(registration_id)),
            )
            return cur.rowcount > 0

    def update_payment(
        self,
        registration_id: int,
        *,
        payment_status: PaymentStatus,
        payment_id: Optional[str],
        payment_amount: float,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE registrations SET payment_status=%s, payment_id=%s, payment_amount=%s WHERE registration_id=%s",
                (payment_status.value, payment_id, payment_amount, int(registration_id)),
            )
            return cur.rowcount > 0

    def delete_by_id(self, registration_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM registrations WHERE registration_id=%s", (int(registration_id),))
            return cur.rowcount > 0

    def _list(self, column: str, value: int, status: Optional[RegistrationStatus]) -> Sequence[Registration]:
        where, params = where_clause([(f"{column}=%s", int(value)), ("status=%s", status.value if status else None)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM registrations {where} ORDER BY registered_at DESC", params)
            return [_to_registration(r) for r in fetchall(cur)]

    def list_for_event(self, event_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[Registration]:
        return self._list("event_id", event_id, status)

    def list_for_user(self, user_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[Registration]:
        return self._list("user_id", user_id, status)

    def count_registered(self, event_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM registrations WHERE event_id=%s AND status=%s",
                (int(event_id), RegistrationStatus.REGISTERED.value),
            )
            return int(fetchone(cur)["n"])
