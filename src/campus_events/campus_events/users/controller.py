from __future__ import annotations

from datetime import timedelta

from flask import Flask, request, session

from ..common.datetime_utils import now_local
from ..common.serialization import user_to_dict
from ..common.web import (
    api_view,
    json_body,
    json_ok,
    optional_enum,
    optional_int,
    parse_bool,
    parse_enum,
    remember_actor,
    require_actor,
)
from ..core.enums import Role
from ..container import Container
from .service import to_session_user


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=7)

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    @api_view
    def auth_register():
        body = json_body()
        user_id = container.user_service.register_student(
            email=body.get("email", ""),
            password=body.get("password", ""),
            first_name=body.get("first_name", ""),
            last_name=body.get("last_name", ""),
            student_id=body.get("student_id"),
        )
        user = container.user_service.get_user(user_id)
        remember_actor(to_session_user(user))
        return json_ok(user_to_dict(user), status=201, message="Account created")

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    @api_view
    def auth_login():
        body = json_body()
        actor = container.auth_service.authenticate(body.get("email", ""), body.get("password", ""))
        remember_actor(actor)
        session.permanent = parse_bool(body.get("remember_me", False))
        return json_ok(user_to_dict(container.user_service.get_user(actor.user_id)))

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @api_view
    def auth_logout():
        session.clear()
        return json_ok(message="Logged out")

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @api_view
    def auth_me():
        actor = require_actor()
        fresh = container.auth_service.load_session_user(actor.user_id)
        remember_actor(fresh)
        return json_ok(user_to_dict(container.user_service.get_user(fresh.user_id)))

    @app.route("/api/auth/profile", methods=["PUT"], endpoint="auth_profile")
    @api_view
    def auth_profile():
        actor = require_actor()
        body = json_body()
        user = container.user_service.update_profile(
            actor,
            actor.user_id,
            first_name=body.get("first_name"),
            last_name=body.get("last_name"),
            student_id=body.get("student_id"),
        )
        remember_actor(to_session_user(user))
        return json_ok(user_to_dict(user))

    @app.route("/api/auth/password", methods=["PUT"], endpoint="auth_password")
    @api_view
    def auth_password():
        actor = require_actor()
        body = json_body()
        container.user_service.change_password(
            actor,
            current_password=body.get("current_password", ""),
            new_password=body.get("new_password", ""),
        )
        return json_ok(message="Password updated")

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @api_view
    def list_users():
        actor = require_actor()
        users = container.user_service.list_users(
            actor,
            role=optional_enum(Role, request.args.get("role"), "role"),
            club_id=request.args.get("club_id", type=int),
        )
        return json_ok([user_to_dict(u) for u in users])

    @app.route("/api/users", methods=["POST"], endpoint="create_user")
    @api_view
    def create_user():
        actor = require_actor()
        body = json_body()
        user_id = container.user_service.create_user_as_admin(
            actor,
            email=body.get("email", ""),
            password=body.get("password", ""),
            first_name=body.get("first_name", ""),
            last_name=body.get("last_name", ""),
            student_id=body.get("student_id"),
            role=parse_enum(Role, body.get("role", Role.STUDENT.value), "role"),
            club_id=optional_int(body.get("club_id"), "club_id"),
        )
        return json_ok(user_to_dict(container.user_service.get_user(user_id)), status=201)

    @app.route("/api/users/<int:user_id>/role", methods=["PUT"], endpoint="assign_role")
    @api_view
    def assign_role(user_id: int):
        actor = require_actor()
        body = json_body()
        user = container.user_service.assign_role(
            actor,
            user_id,
            role=parse_enum(Role, body.get("role"), "role"),
            club_id=optional_int(body.get("club_id"), "club_id"),
        )
        return json_ok(user_to_dict(user))

    @app.route("/api/users/<int:user_id>/active", methods=["PUT"], endpoint="set_user_active")
    @api_view
    def set_user_active(user_id: int):
        actor = require_actor()
        body = json_body()
        user = container.user_service.set_active(actor, user_id, is_active=parse_bool(body.get("is_active", True)))
        return json_ok(user_to_dict(user))

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @api_view
    def delete_user(user_id: int):
        actor = require_actor()
        container.user_service.delete_user(actor, user_id, now=now_local())
        return json_ok(message="User deleted")
