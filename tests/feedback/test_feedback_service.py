from __future__ import annotations

from datetime import timedelta

import pytest

from src.campus_events.campus_events.core.enums import ImprovementArea
from src.campus_events.campus_events.core.exceptions import (
    AuthorizationError,
    DuplicateRecordError,
    PrerequisiteError,
    ValidationError,
)


@pytest.fixture
def event(container, world, club_id, club_admin):
    return container.events_repo.get_by_id(world.event(club_id, created_by=club_admin.user_id))


@pytest.fixture
def attendee(container, club_admin, student, event, fixed_now):
    container.registration_service.register(student, event.event_id, now=fixed_now)
    container.attendance_service.mark_manual(club_admin, event.event_id, user_id=student.user_id, now=event.start_time)
    return student


@pytest.fixture
def after_end(event):
    return event.end_time + timedelta(hours=1)


def test_submit_feedback(container, attendee, event, after_end):
    feedback_id = container.feedback_service.submit(
        attendee,
        event.event_id,
        rating=4,
        comment="  Great pacing ",
        categories={"content": 5, "venue": 3},
        would_recommend=True,
        improvements=["timing", "Venue", "timing"],
        now=after_end,
    )

    feedback = container.feedback_repo.get_by_id(feedback_id)
    assert feedback.comment == "Great pacing"
    assert feedback.categories.overall == 4
    assert feedback.improvements == (ImprovementArea.TIMING, ImprovementArea.VENUE)
    assert feedback.average_category_rating == 4.0
    stats = container.events_repo.get_by_id(event.event_id).stats
    assert (stats.feedback_count, stats.average_rating) == (1, 4.0)


def test_feedback_before_end_rejected(container, attendee, event):
    with pytest.raises(PrerequisiteError, match="after the event ends"):
        container.feedback_service.submit(attendee, event.event_id, rating=5, now=event.end_time - timedelta(minutes=1))
    assert container.events_repo.get_by_id(event.event_id).stats.feedback_count == 0


def test_feedback_requires_attendance(container, world, event, fixed_now, after_end):
    only_registered = world.user()
    container.registration_service.register(only_registered, event.event_id, now=fixed_now)

    with pytest.raises(PrerequisiteError, match="attend"):
        container.feedback_service.submit(only_registered, event.event_id, rating=5, now=after_end)


def test_duplicate_feedback_rejected(container, attendee, event, after_end):
    container.feedback_service.submit(attendee, event.event_id, rating=3, now=after_end)

    with pytest.raises(DuplicateRecordError):
        container.feedback_service.submit(attendee, event.event_id, rating=5, now=after_end)


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"rating": 0}, "Rating"),
        ({"rating": 6}, "Rating"),
        ({"rating": 4.5}, "whole number"),
        ({"rating": 4, "categories": {"content": 9}}, "Content rating"),
        ({"rating": 4, "categories": {"catering": 3}}, "Unknown rating categories"),
        ({"rating": 4, "improvements": ["snacks"]}, "Unknown improvement"),
        ({"rating": 4, "comment": "x" * 1001}, "Comment"),
    ],
)
def test_feedback_validation(container, attendee, event, after_end, fields, message):
    with pytest.raises(ValidationError, match=message):
        container.feedback_service.submit(attendee, event.event_id, now=after_end, **fields)


def test_delete_feedback_permissions(container, world, attendee, event, after_end):
    feedback_id = container.feedback_service.submit(attendee, event.event_id, rating=2, now=after_end)

    with pytest.raises(AuthorizationError):
        container.feedback_service.delete_feedback(world.user(), feedback_id)

    container.feedback_service.delete_feedback(attendee, feedback_id, now=after_end)
    stats = container.events_repo.get_by_id(event.event_id).stats
    assert (stats.feedback_count, stats.average_rating) == (0, 0.0)


def test_moderation_hides_from_students(container, world, club_admin, attendee, event, after_end):
    feedback_id = container.feedback_service.submit(attendee, event.event_id, rating=1, comment="Rude", now=after_end)

    moderated = container.feedback_service.moderate(club_admin, feedback_id, reason="Offensive", now=after_end)
    assert moderated.is_moderated
    assert moderated.moderated_by == club_admin.user_id
    assert moderated.moderation_reason == "Offensive"

    assert container.feedback_service.list_for_event(world.user(), event.event_id) == []
    assert len(container.feedback_service.list_for_event(club_admin, event.event_id)) == 1

    with pytest.raises(AuthorizationError):
        container.feedback_service.moderate(attendee, feedback_id)

    restored = container.feedback_service.unmoderate(club_admin, feedback_id)
    assert not restored.is_moderated
    assert restored.moderated_by is None


def test_feedback_summary(container, world, club_admin, event, fixed_now, after_end):
    ratings = [(5, {"content": 5}), (4, {"content": 3}), (4, {})]
    students = [world.user() for _ in ratings]
    for s in students:
        container.registration_service.register(s, event.event_id, now=fixed_now)
    container.attendance_service.mark_bulk(club_admin, event.event_id, [s.user_id for s in students], now=event.start_time)
    for s, (rating, categories) in zip(students, ratings):
        container.feedback_service.submit(s, event.event_id, rating=rating, categories=categories, now=after_end)

    summary = container.feedback_service.feedback_summary(event.event_id)
    assert summary.total_feedback == 3
    assert summary.average_rating == 4.3
    assert summary.category_averages == {"content": 4.0, "overall": 4.3}
    assert summary.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}


def test_feedback_summary_empty(container, event):
    summary = container.feedback_service.feedback_summary(event.event_id)
    assert summary.total_feedback == 0
    assert summary.average_rating == 0.0
    assert sum(summary.rating_distribution.values()) == 0
