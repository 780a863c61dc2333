from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateRecordError, ValidationError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def unique_violation_as(message: str):
    """Translate MySQL duplicate-key errors into :class:`DuplicateRecordError`."""
    try:
        yield
    except mysql.connector.IntegrityError as e:
        if getattr(e, "errno", None) == errorcode.ER_DUP_ENTRY:
            raise DuplicateRecordError(message) from e
        raise


@contextmanager
def referenced_row_as(message: str):
    """Translate foreign-key restrict errors into :class:`ValidationError`."""
    try:
        yield
    except mysql.connector.IntegrityError as e:
        if getattr(e, "errno", None) == errorcode.ER_ROW_IS_REFERENCED_2:
            raise ValidationError(message) from e
        raise


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def where_clause(filters: Iterable[Tuple[str, Any]]) -> Tuple[str, tuple]:
    """Build ``WHERE a=%s AND b=%s`` from (column_sql, value) pairs, skipping ``None`` values."""

    clauses: list[str] = []
    params: list[Any] = []
    for column_sql, value in filters:
        if value is None:
            continue
        clauses.append(column_sql)
        params.append(value)
    if not clauses:
        return "", ()
    return "WHERE " + " AND ".join(clauses), tuple(params)


LIKE_ESCAPE = "!"


def like_contains(term: str) -> str:
    """Pattern for ``LIKE %s ESCAPE '!'`` matching ``term`` literally anywhere in the column."""
    for ch in (LIKE_ESCAPE, "%", "_"):
        term = term.replace(ch, LIKE_ESCAPE + ch)
    return f"%{term}%"


def split_csv(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part for part in (p.strip() for p in value.split(",")) if part)


def join_csv(values: Iterable[str]) -> Optional[str]:
    joined = ",".join(v for v in values if v)
    return joined or None
