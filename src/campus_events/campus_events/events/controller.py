from __future__ import annotations

import io
import json
from datetime import datetime

import qrcode
from flask import Flask, request, send_file

from ..common.access import can_manage_club
from ..common.datetime_utils import now_local, parse_iso_datetime, parse_optional_datetime
from ..common.serialization import event_to_dict
from ..common.web import (
    api_view,
    current_actor,
    json_body,
    json_error,
    json_ok,
    optional_enum,
    optional_int,
    parse_bool,
    parse_enum,
    require_actor,
)
from ..core.enums import EventCategory, EventStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..container import Container
from .model import EventDetails

_REQUIRED_FIELDS = {
    "title": "Title",
    "description": "Description",
    "start_time": "Start time",
    "end_time": "End time",
    "location": "Location",
    "category": "Category",
}


def _parse_fee(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("Registration fee must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("Registration fee must be a number")


def _parse_tags(value) -> tuple:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(value.split(","))
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise ValidationError("Tags must be a list")


def parse_event_changes(body: dict) -> dict:
    """Only the keys present in ``body`` end up in the result."""
    parsers = {
        "title": lambda v: v if isinstance(v, str) else "",
        "description": lambda v: v if isinstance(v, str) else "",
        "location": lambda v: v if isinstance(v, str) else "",
        "venue": lambda v: v if isinstance(v, str) else None,
        "poster": lambda v: v if isinstance(v, str) and v.strip() else None,
        "start_time": lambda v: parse_iso_datetime(v, "Start time"),
        "end_time": lambda v: parse_iso_datetime(v, "End time"),
        "registration_deadline": lambda v: parse_optional_datetime(v, "Registration deadline"),
        "category": lambda v: parse_enum(EventCategory, v, "event category"),
        "max_participants": lambda v: optional_int(v, "Maximum participants"),
        "registration_fee": _parse_fee,
        "is_public": parse_bool,
        "requires_approval": parse_bool,
        "attendance_required": parse_bool,
        "tags": _parse_tags,
    }
    return {name: parse(body[name]) for name, parse in parsers.items() if name in body}


def _qr_png(payload: str):
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return send_file(buf, mimetype="image/png")


def register(app: Flask, container: Container) -> None:
    def serialize(event, *, now: datetime):
        actor = current_actor()
        include_qr = actor is not None and can_manage_club(actor, event.club_id)
        return event_to_dict(event, now=now, include_qr=include_qr)

    @app.route("/api/events", methods=["GET"], endpoint="list_events")
    @api_view
    def list_events():
        now = now_local()
        events = container.event_service.list_events(
            current_actor(),
            status=optional_enum(EventStatus, request.args.get("status"), "status"),
            club_id=optional_int(request.args.get("club_id"), "club_id"),
            category=optional_enum(EventCategory, request.args.get("category"), "category"),
            upcoming_only=parse_bool(request.args.get("upcoming", False)),
            search=request.args.get("search"),
            limit=optional_int(request.args.get("limit"), "limit") or 100,
            now=now,
        )
        return json_ok([serialize(e, now=now) for e in events])

    @app.route("/api/events", methods=["POST"], endpoint="create_event")
    @api_view
    def create_event():
        actor = require_actor()
        body = json_body()
        changes = parse_event_changes(body)
        for name, label in _REQUIRED_FIELDS.items():
            if name not in changes:
                raise ValidationError(f"{label} is required")

        club_id = optional_int(body.get("club_id"), "club_id") or actor.club_id
        if club_id is None:
            raise ValidationError("Club is required")

        now = now_local()
        event_id = container.event_service.create_event(actor, club_id=club_id, details=EventDetails(**changes), now=now)
        return json_ok(serialize(container.event_service.get_event(event_id), now=now), status=201)

    @app.route("/api/events/<int:event_id>", methods=["GET"], endpoint="get_event")
    @api_view
    def get_event(event_id: int):
        event = container.event_service.get_visible_event(current_actor(), event_id)
        return json_ok(serialize(event, now=now_local()))

    @app.route("/api/events/<int:event_id>", methods=["PUT"], endpoint="update_event")
    @api_view
    def update_event(event_id: int):
        actor = require_actor()
        now = now_local()
        event = container.event_service.update_event(actor, event_id, parse_event_changes(json_body()), now=now)
        return json_ok(serialize(event, now=now))

    @app.route("/api/events/<int:event_id>", methods=["DELETE"], endpoint="delete_event")
    @api_view
    def delete_event(event_id: int):
        actor = require_actor()
        container.event_service.delete_event(actor, event_id)
        return json_ok(message="Event deleted")

    @app.route("/api/events/<int:event_id>/publish", methods=["POST"], endpoint="publish_event")
    @api_view
    def publish_event(event_id: int):
        actor = require_actor()
        now = now_local()
        return json_ok(serialize(container.event_service.publish_event(actor, event_id, now=now), now=now))

    @app.route("/api/events/<int:event_id>/cancel", methods=["POST"], endpoint="cancel_event")
    @api_view
    def cancel_event(event_id: int):
        actor = require_actor()
        now = now_local()
        return json_ok(serialize(container.event_service.cancel_event(actor, event_id, now=now), now=now))

    @app.route("/api/events/<int:event_id>/qr-code", methods=["POST"], endpoint="generate_event_qr")
    @api_view
    def generate_event_qr(event_id: int):
        actor = require_actor()
        event = container.event_service.generate_qr_code(actor, event_id, now=now_local())
        return json_ok({"qr_code": event.qr_code, "qr_code_expiry": event.qr_code_expiry.isoformat()})

    @app.route("/api/events/<int:event_id>/qr-code.png", methods=["GET"], endpoint="event_qr_image")
    @api_view
    def event_qr_image(event_id: int):
        """Render the event's current check-in token as a PNG."""
        actor = require_actor()
        event = container.event_service.get_event(event_id)
        if not can_manage_club(actor, event.club_id):
            raise AuthorizationError("You do not have permission to manage this club")
        if not event.qr_code or not event.qr_code_expiry or event.qr_code_expiry < now_local():
            raise NotFoundError("No active QR code for this event")

        try:
            return _qr_png(json.dumps({"event_id": event.event_id, "qr_token": event.qr_code}))
        except (OSError, ValueError) as e:
            return json_error(str(e), 500)
