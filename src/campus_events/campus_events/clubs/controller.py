from __future__ import annotations

from flask import Flask, request

from ..common.serialization import to_primitive
from ..common.web import api_view, current_actor, json_body, json_ok, parse_bool, require_actor
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/clubs", methods=["GET"], endpoint="list_clubs")
    @api_view
    def list_clubs():
        include_inactive = parse_bool(request.args.get("include_inactive", False)) and current_actor() is not None
        clubs = container.club_service.list_clubs(include_inactive=include_inactive)
        return json_ok([to_primitive(c) for c in clubs])

    @app.route("/api/clubs", methods=["POST"], endpoint="create_club")
    @api_view
    def create_club():
        actor = require_actor()
        body = json_body()
        club_id = container.club_service.create_club(
            actor,
            name=body.get("name", ""),
            description=body.get("description"),
            contact_email=body.get("contact_email"),
            logo=body.get("logo"),
        )
        return json_ok(to_primitive(container.club_service.get_club(club_id)), status=201)

    @app.route("/api/clubs/<int:club_id>", methods=["GET"], endpoint="get_club")
    @api_view
    def get_club(club_id: int):
        return json_ok(to_primitive(container.club_service.get_club(club_id)))

    @app.route("/api/clubs/<int:club_id>", methods=["PUT"], endpoint="update_club")
    @api_view
    def update_club(club_id: int):
        actor = require_actor()
        body = json_body()
        club = container.club_service.update_club(
            actor,
            club_id,
            name=body.get("name"),
            description=body.get("description"),
            contact_email=body.get("contact_email"),
            logo=body.get("logo"),
            is_active=parse_bool(body["is_active"]) if "is_active" in body else None,
        )
        return json_ok(to_primitive(club))

    @app.route("/api/clubs/<int:club_id>", methods=["DELETE"], endpoint="delete_club")
    @api_view
    def delete_club(club_id: int):
        actor = require_actor()
        container.club_service.delete_club(actor, club_id)
        return json_ok(message="Club deleted")

    @app.route("/api/clubs/<int:club_id>/stats", methods=["POST"], endpoint="refresh_club_stats")
    @api_view
    def refresh_club_stats(club_id: int):
        actor = require_actor()
        stats = container.club_service.refresh_stats(actor, club_id)
        return json_ok(to_primitive(stats))
