"""Turn domain dataclasses into JSON-ready dicts for the API."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from ..events.model import Event
from ..feedback.model import Feedback
from ..users.model import User


def to_primitive(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(to_primitive(k)): to_primitive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_primitive(v) for v in value]
    return value


def user_to_dict(user: User) -> dict:
    data = to_primitive(user)
    data.pop("password_hash", None)
    data["full_name"] = user.full_name
    return data


def event_to_dict(event: Event, *, now: datetime, include_qr: bool = False) -> dict:
    data = to_primitive(event)
    if not include_qr:
        data.pop("qr_code", None)
        data.pop("qr_code_expiry", None)
    data["duration_minutes"] = event.duration_minutes
    data["registration_status"] = event.registration_window(now).value
    data["lifecycle_status"] = event.lifecycle_status(now).value
    data["can_register"] = event.can_register(now)
    data["can_mark_attendance"] = event.can_mark_attendance(now)
    return data


def feedback_to_dict(feedback: Feedback, *, viewer_id: Optional[int] = None) -> dict:
    """Anonymous feedback hides its author from everyone but the author."""
    data = to_primitive(feedback)
    data["average_category_rating"] = feedback.average_category_rating
    if feedback.is_anonymous and feedback.user_id != viewer_id:
        data["user_id"] = None
        data["attendance_id"] = None
    return data
