from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from loguru import logger
from werkzeug.security import generate_password_hash


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "campus_events")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    target = _as_target(db_config)
    ensure_database_exists(db_config)

    sql = _strip_comments(_strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8")))

    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied to {}@{}/{}", target.user, target.host, target.database)


def ensure_demo_data(db_config: dict) -> None:
    """Upsert one demo club with a super admin, a club admin and a student.

    Club stats are left at zero; run ``scripts/rebuild_stats.py`` (or any write)
    to bring them up to date.
    """

    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        cur.execute("SELECT club_id FROM clubs WHERE name=%s", ("Coding Club",))
        row = cur.fetchone()
        if row:
            club_id = int(row["club_id"])
        else:
            cur.execute(
                "INSERT INTO clubs (name, description, contact_email) VALUES (%s, %s, %s)",
                ("Coding Club", "Weekly hack nights and workshops", "coding@campus.edu"),
            )
            club_id = int(cur.lastrowid)

        def upsert_user(email: str, password: str, first: str, last: str, role: str, club: int | None) -> None:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET password_hash=%s, first_name=%s, last_name=%s, role=%s, club_id=%s, is_active=1
                    WHERE email=%s
                    """,
                    (password_hash, first, last, role, club, email),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (email, password_hash, first_name, last_name, role, club_id)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (email, password_hash, first, last, role, club),
                )

        upsert_user("admin@campus.edu", "admin12345", "Super", "Admin", "super_admin", None)
        upsert_user("clubadmin@campus.edu", "club12345", "Club", "Admin", "club_admin", club_id)
        upsert_user("student@campus.edu", "student123", "Demo", "Student", "student", None)

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo data ready (club_id={})", club_id)


def list_tables(db_config: dict) -> list[str]:
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
