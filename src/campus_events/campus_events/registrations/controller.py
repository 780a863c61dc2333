from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.serialization import event_to_dict, to_primitive
from ..common.web import api_view, json_body, json_ok, optional_enum, parse_enum, require_actor
from ..core.enums import PaymentStatus, RegistrationStatus
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/register", methods=["POST"], endpoint="register_for_event")
    @api_view
    def register_for_event(event_id: int):
        actor = require_actor()
        body = json_body()
        registration_id = container.registration_service.register(
            actor,
            event_id,
            additional_info=body.get("additional_info"),
            now=now_local(),
        )
        registration = container.registration_service.get_registration(registration_id)
        return json_ok(to_primitive(registration), status=201, message="Registered successfully")

    @app.route("/api/events/<int:event_id>/register", methods=["DELETE"], endpoint="cancel_registration")
    @api_view
    def cancel_registration(event_id: int):
        actor = require_actor()
        body = json_body()
        registration = container.registration_service.cancel(
            actor,
            event_id,
            reason=body.get("reason"),
            now=now_local(),
        )
        return json_ok(to_primitive(registration), message="Registration cancelled")

    @app.route("/api/events/<int:event_id>/registrations", methods=["GET"], endpoint="list_event_registrations")
    @api_view
    def list_event_registrations(event_id: int):
        actor = require_actor()
        rows = container.registration_service.list_for_event(
            actor,
            event_id,
            status=optional_enum(RegistrationStatus, request.args.get("status"), "status"),
        )
        return json_ok([to_primitive(r) for r in rows])

    @app.route("/api/events/my-events", methods=["GET"], endpoint="my_events")
    @api_view
    def my_events():
        actor = require_actor()
        now = now_local()
        rows = container.registration_service.my_events(
            actor,
            status=optional_enum(RegistrationStatus, request.args.get("status"), "status"),
        )
        return json_ok(
            [{"registration": to_primitive(r), "event": event_to_dict(e, now=now)} for r, e in rows]
        )

    @app.route("/api/registrations/<int:registration_id>", methods=["DELETE"], endpoint="delete_registration")
    @api_view
    def delete_registration(registration_id: int):
        actor = require_actor()
        container.registration_service.delete_registration(actor, registration_id, now=now_local())
        return json_ok(message="Registration deleted")

    @app.route("/api/registrations/<int:registration_id>/payment", methods=["PUT"], endpoint="record_payment")
    @api_view
    def record_payment(registration_id: int):
        actor = require_actor()
        body = json_body()
        registration = container.registration_service.record_payment(
            actor,
            registration_id,
            payment_status=parse_enum(PaymentStatus, body.get("payment_status"), "payment status"),
            payment_id=body.get("payment_id"),
            payment_amount=body.get("payment_amount"),
        )
        return json_ok(to_primitive(registration))
