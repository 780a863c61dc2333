from __future__ import annotations

from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session
from loguru import logger

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from ..users.model import SessionUser


def json_ok(data: Any = None, *, status: int = 200, message: Optional[str] = None):
    payload = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return jsonify(payload), status


def json_error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def _status_for(error: DomainError) -> int:
    if isinstance(error, DuplicateRecordError):
        return 409
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return 403
    return 400


def api_view(view):
    """Map domain errors to JSON responses; anything else is logged and becomes a 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return json_error(str(e), _status_for(e))
        except Exception:
            logger.exception("Unhandled error in {} {}", request.method, request.path)
            return json_error("Internal server error", 500)

    return wrapper


def remember_actor(actor: SessionUser) -> None:
    session.clear()
    session["user_id"] = actor.user_id
    session["name"] = actor.full_name
    session["role"] = actor.role.value
    session["club_id"] = actor.club_id


def current_actor() -> Optional[SessionUser]:
    if "user_id" not in session:
        return None
    return SessionUser(
        user_id=int(session["user_id"]),
        full_name=session.get("name", ""),
        role=Role(session.get("role", Role.STUDENT.value)),
        club_id=session.get("club_id"),
    )


def require_actor() -> SessionUser:
    actor = current_actor()
    if actor is None:
        raise AuthenticationError("Please log in to continue")
    return actor


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def parse_enum(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid {field_name}")


def optional_enum(enum_cls, value: Any, field_name: str):
    if value is None or not str(value).strip():
        return None
    return parse_enum(enum_cls, value, field_name)


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return parse_int(value, field_name)
