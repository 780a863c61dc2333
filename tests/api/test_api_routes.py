from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.campus_events.campus_events.main import create_app


@pytest.fixture
def app(container):
    app = create_app("config.testing", container=container)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email, password="password123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def event_payload(**overrides):
    start = (datetime.now() + timedelta(days=7)).replace(microsecond=0)
    payload = {
        "title": "Cloud Workshop",
        "description": "Deploying small services to the cloud.",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=2)).isoformat(),
        "location": "Lab 3",
        "category": "workshop",
        "tags": "Cloud, DevOps",
        "max_participants": 30,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def published_event(client, club_admin, club_id):
    login(client, "lead@campus.edu")
    created = client.post("/api/events", json=event_payload(club_id=club_id)).get_json()["data"]
    client.post(f"/api/events/{created['event_id']}/publish")
    client.post("/api/auth/logout")
    return created["event_id"]


def test_register_account_and_me(client):
    res = client.post(
        "/api/auth/register",
        json={"email": "new@campus.edu", "password": "password123", "first_name": "Nia", "last_name": "New"},
    )
    assert res.status_code == 201
    body = res.get_json()
    assert body["success"] is True
    assert "password_hash" not in body["data"]

    me = client.get("/api/auth/me").get_json()
    assert me["data"]["email"] == "new@campus.edu"
    assert me["data"]["role"] == "student"


def test_login_failure_and_auth_required(client, student):
    res = login(client, "sam@campus.edu", "bad-password")
    assert res.status_code == 401
    assert res.get_json() == {"success": False, "message": "Invalid email or password"}

    assert client.get("/api/auth/me").status_code == 401
    assert client.post("/api/events", json=event_payload()).status_code == 401


def test_validation_errors_are_400(client, student):
    login(client, "sam@campus.edu")
    res = client.put("/api/auth/password", json={"current_password": "password123", "new_password": "short"})
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_event_lifecycle_over_http(client, club_admin, student, club_id):
    login(client, "lead@campus.edu")
    res = client.post("/api/events", json=event_payload(club_id=club_id))
    assert res.status_code == 201
    event = res.get_json()["data"]
    assert event["status"] == "draft"
    assert event["tags"] == ["cloud", "devops"]
    assert event["lifecycle_status"] == "draft"

    published = client.post(f"/api/events/{event['event_id']}/publish").get_json()["data"]
    assert published["status"] == "published"
    assert published["registration_status"] == "open"

    client.post("/api/auth/logout")
    login(client, "sam@campus.edu")
    assert client.post(f"/api/events/{event['event_id']}/cancel").status_code == 403

    res = client.post(f"/api/events/{event['event_id']}/register", json={})
    assert res.status_code == 201
    assert client.post(f"/api/events/{event['event_id']}/register", json={}).status_code == 409

    detail = client.get(f"/api/events/{event['event_id']}").get_json()["data"]
    assert detail["stats"]["registrations"] == 1
    assert "qr_code" not in detail

    mine = client.get("/api/events/my-events").get_json()["data"]
    assert [row["event"]["event_id"] for row in mine] == [event["event_id"]]


def test_missing_event_is_404(client):
    res = client.get("/api/events/12345")
    assert res.status_code == 404
    assert res.get_json()["message"] == "Event not found"


def test_create_event_requires_fields(client, club_admin, club_id):
    login(client, "lead@campus.edu")
    payload = event_payload(club_id=club_id)
    del payload["location"]

    res = client.post("/api/events", json=payload)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Location is required"


def test_qr_code_png(client, club_admin, published_event):
    login(client, "lead@campus.edu")
    assert client.get(f"/api/events/{published_event}/qr-code.png").status_code == 404

    issued = client.post(f"/api/events/{published_event}/qr-code").get_json()["data"]
    assert issued["qr_code"]

    res = client.get(f"/api/events/{published_event}/qr-code.png")
    assert res.status_code == 200
    assert res.mimetype == "image/png"
    assert res.data[:8] == b"\x89PNG\r\n\x1a\n"


def test_attendance_outside_window_over_http(client, club_admin, student, published_event):
    login(client, "sam@campus.edu")
    client.post(f"/api/events/{published_event}/register", json={})
    client.post("/api/auth/logout")

    login(client, "lead@campus.edu")
    res = client.post(
        f"/api/events/{published_event}/attendance",
        json={"method": "manual", "user_id": student.user_id},
    )
    assert res.status_code == 400
    assert "Attendance can only be marked" in res.get_json()["message"]

    summary = client.get(f"/api/events/{published_event}/attendance/summary").get_json()["data"]
    assert summary == {
        "total_registrations": 1,
        "total_attendance": 0,
        "attendance_rate": 0.0,
        "method_breakdown": {},
    }


def test_feedback_summary_route(client, published_event):
    res = client.get(f"/api/events/{published_event}/feedback/summary")
    assert res.status_code == 200
    assert res.get_json()["data"]["total_feedback"] == 0


def test_unexpected_errors_become_500(client, container, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(container.club_service, "list_clubs", boom)

    res = client.get("/api/clubs")
    assert res.status_code == 500
    assert res.get_json() == {"success": False, "message": "Internal server error"}


def test_user_admin_routes(client, super_admin, student, club_id):
    login(client, "admin@campus.edu")
    res = client.put(f"/api/users/{student.user_id}/role", json={"role": "club_admin", "club_id": club_id})
    assert res.status_code == 200
    assert res.get_json()["data"]["club_id"] == club_id

    users = client.get("/api/users?role=club_admin").get_json()["data"]
    assert [u["user_id"] for u in users] == [student.user_id]

    assert client.put(f"/api/users/{student.user_id}/active", json={"is_active": False}).status_code == 200
    assert client.delete(f"/api/users/{student.user_id}").status_code == 200
