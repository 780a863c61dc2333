from __future__ import annotations

from flask import Flask, request

from .model import DeviceInfo
from ..common.datetime_utils import now_local
from ..common.serialization import to_primitive
from ..common.web import api_view, json_body, json_ok, parse_bool, parse_enum, parse_int, require_actor
from ..core.enums import AttendanceMethod
from ..core.exceptions import ValidationError
from ..container import Container


def _device_from_request(body: dict) -> DeviceInfo:
    info = body.get("device_info") or {}
    if not isinstance(info, dict):
        info = {}
    return DeviceInfo(
        user_agent=info.get("user_agent") or request.headers.get("User-Agent"),
        ip_address=info.get("ip_address") or request.remote_addr,
        platform=info.get("platform"),
    )


def _optional_coordinate(body: dict, name: str):
    value = body.get(name)
    if value is None or isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name.capitalize()} must be a number")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/attendance", methods=["POST"], endpoint="mark_attendance")
    @api_view
    def mark_attendance(event_id: int):
        """QR self check-in by default; managers send ``method=manual`` with a ``user_id``."""
        actor = require_actor()
        body = json_body()
        method = parse_enum(AttendanceMethod, body.get("method", AttendanceMethod.QR_SCAN.value), "attendance method")

        if method == AttendanceMethod.QR_SCAN:
            attendance_id = container.attendance_service.check_in_with_qr(
                actor,
                event_id,
                qr_token=body.get("qr_token", ""),
                latitude=_optional_coordinate(body, "latitude"),
                longitude=_optional_coordinate(body, "longitude"),
                device=_device_from_request(body),
                now=now_local(),
            )
        elif method == AttendanceMethod.MANUAL:
            attendance_id = container.attendance_service.mark_manual(
                actor,
                event_id,
                user_id=parse_int(body.get("user_id"), "user_id"),
                notes=body.get("notes"),
                device=_device_from_request(body),
                now=now_local(),
            )
        else:
            raise ValidationError("Use the bulk endpoint for bulk uploads")

        return json_ok({"attendance_id": attendance_id}, status=201, message="Attendance marked")

    @app.route("/api/events/<int:event_id>/attendance/bulk", methods=["POST"], endpoint="mark_bulk_attendance")
    @api_view
    def mark_bulk_attendance(event_id: int):
        actor = require_actor()
        user_ids = json_body().get("user_ids")
        if not isinstance(user_ids, list) or not user_ids:
            raise ValidationError("user_ids must be a non-empty list")

        result = container.attendance_service.mark_bulk(actor, event_id, user_ids, now=now_local())
        return json_ok(to_primitive(result))

    @app.route("/api/events/<int:event_id>/attendance", methods=["GET"], endpoint="list_event_attendance")
    @api_view
    def list_event_attendance(event_id: int):
        actor = require_actor()
        rows = container.attendance_service.list_for_event(actor, event_id)
        return json_ok([to_primitive(r) for r in rows])

    @app.route("/api/events/<int:event_id>/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @api_view
    def attendance_summary(event_id: int):
        actor = require_actor()
        return json_ok(to_primitive(container.attendance_service.attendance_summary(actor, event_id)))

    @app.route("/api/attendance/mine", methods=["GET"], endpoint="my_attendance")
    @api_view
    def my_attendance():
        actor = require_actor()
        return json_ok([to_primitive(r) for r in container.attendance_service.list_for_user(actor)])

    @app.route("/api/attendance/<int:attendance_id>/verify", methods=["POST"], endpoint="verify_attendance")
    @api_view
    def verify_attendance(attendance_id: int):
        actor = require_actor()
        body = json_body()
        record = container.attendance_service.set_verified(
            actor,
            attendance_id,
            is_verified=parse_bool(body.get("is_verified", True)),
            notes=body.get("notes"),
        )
        return json_ok(to_primitive(record))

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="delete_attendance")
    @api_view
    def delete_attendance(attendance_id: int):
        actor = require_actor()
        container.attendance_service.delete_attendance(actor, attendance_id, now=now_local())
        return json_ok(message="Attendance deleted")
