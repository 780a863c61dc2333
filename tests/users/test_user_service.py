from __future__ import annotations

import pytest

from src.campus_events.campus_events.core.enums import Role
from src.campus_events.campus_events.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)


def test_register_student_normalizes_fields(container):
    user_id = container.user_service.register_student(
        email="  Jane.Doe@Campus.EDU ",
        password="supersecret",
        first_name=" Jane ",
        last_name="Doe",
        student_id="cs2026a",
    )

    user = container.users_repo.get_by_id(user_id)
    assert user.email == "jane.doe@campus.edu"
    assert user.first_name == "Jane"
    assert user.student_id == "CS2026A"
    assert user.role == Role.STUDENT
    assert user.password_hash != "supersecret"


@pytest.mark.parametrize(
    "fields, error",
    [
        ({"email": "not-an-email"}, ValidationError),
        ({"password": "short"}, ValidationError),
        ({"first_name": "J"}, ValidationError),
        ({"student_id": "CS-01"}, ValidationError),
        ({"email": "sam@campus.edu"}, DuplicateRecordError),
    ],
)
def test_register_student_rejects(container, student, fields, error):
    payload = dict(email="new@campus.edu", password="password123", first_name="New", last_name="Person")
    payload.update(fields)

    with pytest.raises(error):
        container.user_service.register_student(**payload)


def test_authenticate(container, student):
    actor = container.auth_service.authenticate(" SAM@campus.edu", "password123")
    assert actor.user_id == student.user_id
    assert actor.full_name == "Sam Student"

    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("sam@campus.edu", "wrong-password")
    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("nobody@campus.edu", "password123")


def test_inactive_user_cannot_log_in(container, student, super_admin):
    container.user_service.set_active(super_admin, student.user_id, is_active=False)

    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("sam@campus.edu", "password123")
    with pytest.raises(AuthenticationError):
        container.auth_service.load_session_user(student.user_id)


def test_change_password(container, student):
    with pytest.raises(AuthenticationError):
        container.user_service.change_password(student, current_password="nope", new_password="newpassword1")

    container.user_service.change_password(student, current_password="password123", new_password="newpassword1")
    assert container.auth_service.authenticate("sam@campus.edu", "newpassword1").user_id == student.user_id


def test_update_profile_only_self(container, world, student):
    other = world.user()
    with pytest.raises(AuthorizationError):
        container.user_service.update_profile(other, student.user_id, first_name="Eve", last_name="Hacker")

    user = container.user_service.update_profile(student, student.user_id, first_name="Samuel", last_name="Student")
    assert user.full_name == "Samuel Student"


def test_club_admin_needs_a_club(container, super_admin):
    with pytest.raises(ValidationError, match="Club is required"):
        container.user_service.create_user_as_admin(
            super_admin,
            email="lead2@campus.edu",
            password="password123",
            first_name="Lea",
            last_name="Lead",
            role=Role.CLUB_ADMIN,
        )

    with pytest.raises(NotFoundError):
        container.user_service.create_user_as_admin(
            super_admin,
            email="lead2@campus.edu",
            password="password123",
            first_name="Lea",
            last_name="Lead",
            role=Role.CLUB_ADMIN,
            club_id=404,
        )


def test_only_super_admin_manages_roles(container, student, club_admin, club_id):
    with pytest.raises(AuthorizationError):
        container.user_service.assign_role(club_admin, student.user_id, role=Role.CLUB_ADMIN, club_id=club_id)


def test_role_change_refreshes_old_and_new_club(container, world, super_admin, club_admin, club_id):
    other_club = world.club("Drama Club")
    container.stats_service.recompute_club_stats(club_id)
    assert container.clubs_repo.get_by_id(club_id).stats.total_members == 1

    user = container.user_service.assign_role(super_admin, club_admin.user_id, role=Role.CLUB_ADMIN, club_id=other_club)

    assert user.club_id == other_club
    assert container.clubs_repo.get_by_id(club_id).stats.total_members == 0
    assert container.clubs_repo.get_by_id(other_club).stats.total_members == 1

    demoted = container.user_service.assign_role(super_admin, club_admin.user_id, role=Role.STUDENT)
    assert demoted.club_id is None
    assert container.clubs_repo.get_by_id(other_club).stats.total_members == 0


def test_deactivating_club_admin_refreshes_members(container, super_admin, club_admin, club_id):
    container.stats_service.recompute_club_stats(club_id)

    container.user_service.set_active(super_admin, club_admin.user_id, is_active=False)
    assert container.clubs_repo.get_by_id(club_id).stats.total_members == 0

    with pytest.raises(ValidationError):
        container.user_service.set_active(super_admin, super_admin.user_id, is_active=False)


def test_delete_user(container, world, super_admin, club_admin, club_id, student, fixed_now):
    event_id = world.event(club_id, created_by=club_admin.user_id)
    container.registration_service.register(student, event_id, now=fixed_now)

    container.user_service.delete_user(super_admin, student.user_id)
    assert container.users_repo.get_by_id(student.user_id) is None
    assert container.registrations_repo.list_for_event(event_id) == []

    with pytest.raises(ValidationError, match="owns events"):
        container.user_service.delete_user(super_admin, club_admin.user_id)
    with pytest.raises(ValidationError):
        container.user_service.delete_user(super_admin, super_admin.user_id)


def test_delete_user_refreshes_event_and_club_stats(
    container, world, super_admin, club_admin, club_id, student, fixed_now
):
    event_id = world.event(club_id, created_by=club_admin.user_id)
    world.registration(student.user_id, event_id)
    world.attendance(student.user_id, event_id, marked_by=club_admin.user_id)
    container.stats_service.recompute_event_stats(event_id, now=fixed_now)
    container.stats_service.recompute_club_stats(club_id)
    assert container.events_repo.get_by_id(event_id).stats.attendance == 1
    assert container.clubs_repo.get_by_id(club_id).stats.total_attendees == 1

    container.user_service.delete_user(super_admin, student.user_id, now=fixed_now)

    stats = container.events_repo.get_by_id(event_id).stats
    assert stats.registrations == container.registrations_repo.count_registered(event_id) == 0
    assert stats.attendance == container.attendance_repo.count_for_event(event_id) == 0
    assert container.clubs_repo.get_by_id(club_id).stats.total_attendees == 0
