from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_local
from ..common.serialization import feedback_to_dict, to_primitive
from ..common.web import api_view, json_body, json_ok, parse_bool, require_actor
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/feedback", methods=["POST"], endpoint="submit_feedback")
    @api_view
    def submit_feedback(event_id: int):
        actor = require_actor()
        body = json_body()
        feedback_id = container.feedback_service.submit(
            actor,
            event_id,
            rating=body.get("rating"),
            comment=body.get("comment"),
            categories=body.get("categories"),
            would_recommend=body.get("would_recommend"),
            improvements=body.get("improvements"),
            is_anonymous=parse_bool(body.get("is_anonymous", False)),
            now=now_local(),
        )
        return json_ok({"feedback_id": feedback_id}, status=201, message="Thank you for your feedback")

    @app.route("/api/events/<int:event_id>/feedback", methods=["GET"], endpoint="list_event_feedback")
    @api_view
    def list_event_feedback(event_id: int):
        actor = require_actor()
        rows = container.feedback_service.list_for_event(actor, event_id)
        return json_ok([feedback_to_dict(f, viewer_id=actor.user_id) for f in rows])

    @app.route("/api/events/<int:event_id>/feedback/summary", methods=["GET"], endpoint="feedback_summary")
    @api_view
    def feedback_summary(event_id: int):
        return json_ok(to_primitive(container.feedback_service.feedback_summary(event_id)))

    @app.route("/api/feedback/<int:feedback_id>/moderation", methods=["POST"], endpoint="moderate_feedback")
    @api_view
    def moderate_feedback(feedback_id: int):
        actor = require_actor()
        feedback = container.feedback_service.moderate(
            actor, feedback_id, reason=json_body().get("reason"), now=now_local()
        )
        return json_ok(feedback_to_dict(feedback, viewer_id=actor.user_id))

    @app.route("/api/feedback/<int:feedback_id>/moderation", methods=["DELETE"], endpoint="unmoderate_feedback")
    @api_view
    def unmoderate_feedback(feedback_id: int):
        actor = require_actor()
        feedback = container.feedback_service.unmoderate(actor, feedback_id)
        return json_ok(feedback_to_dict(feedback, viewer_id=actor.user_id))

    @app.route("/api/feedback/<int:feedback_id>", methods=["DELETE"], endpoint="delete_feedback")
    @api_view
    def delete_feedback(feedback_id: int):
        actor = require_actor()
        container.feedback_service.delete_feedback(actor, feedback_id, now=now_local())
        return json_ok(message="Feedback deleted")
