from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.campus_events.campus_events.attendance.model import AttendanceRecord, DeviceInfo
from src.campus_events.campus_events.clubs.model import Club
from src.campus_events.campus_events.container import assemble
from src.campus_events.campus_events.core.enums import (
    AttendanceMethod,
    EventCategory,
    EventStatus,
    PaymentStatus,
    RegistrationStatus,
    Role,
)
from src.campus_events.campus_events.core.exceptions import DuplicateRecordError, ValidationError
from src.campus_events.campus_events.events.model import Event, EventDetails
from src.campus_events.campus_events.feedback.model import CategoryRatings, Feedback
from src.campus_events.campus_events.registrations.model import Registration
from src.campus_events.campus_events.users.model import SessionUser, User

FAST_HASH = "pbkdf2:sha256:1000"


class InMemoryStore:
    """Tables shared by the in-memory repositories, with the schema's cascades."""

    def __init__(self):
        self.users: dict[int, User] = {}
        self.clubs: dict[int, Club] = {}
        self.events: dict[int, Event] = {}
        self.registrations: dict[int, Registration] = {}
        self.attendance: dict[int, AttendanceRecord] = {}
        self.feedback: dict[int, Feedback] = {}
        self._ids: Counter = Counter()

    def next_id(self, table: str) -> int:
        self._ids[table] += 1
        return self._ids[table]

    def drop_feedback_where(self, pred) -> None:
        for fid in [k for k, f in self.feedback.items() if pred(f)]:
            del self.feedback[fid]

    def drop_attendance_where(self, pred) -> None:
        for aid in [k for k, a in self.attendance.items() if pred(a)]:
            del self.attendance[aid]
            self.drop_feedback_where(lambda f, aid=aid: f.attendance_id == aid)

    def drop_registrations_where(self, pred) -> None:
        for rid in [k for k, r in self.registrations.items() if pred(r)]:
            del self.registrations[rid]
            self.drop_attendance_where(lambda a, rid=rid: a.registration_id == rid)

    def drop_event(self, event_id: int) -> None:
        self.events.pop(event_id, None)
        self.drop_registrations_where(lambda r: r.event_id == event_id)
        self.drop_attendance_where(lambda a: a.event_id == event_id)
        self.drop_feedback_where(lambda f: f.event_id == event_id)


class InMemoryUsers:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._s.users.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._s.users.values() if u.email == email), None)

    def get_by_student_id(self, student_id: str) -> Optional[User]:
        return next((u for u in self._s.users.values() if u.student_id == student_id), None)

    def create_user(self, *, email, password_hash, first_name, last_name, role, student_id=None, club_id=None) -> int:
        if self.get_by_email(email):
            raise DuplicateRecordError("Email is already registered")
        if student_id and self.get_by_student_id(student_id):
            raise DuplicateRecordError("Student ID is already registered")
        user_id = self._s.next_id("users")
        self._s.users[user_id] = User(
            user_id=user_id,
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            student_id=student_id,
            club_id=club_id,
        )
        return user_id

    def _update(self, user_id: int, **changes) -> bool:
        user = self._s.users.get(int(user_id))
        if not user:
            return False
        self._s.users[user.user_id] = replace(user, **changes)
        return True

    def update_profile(self, user_id, *, first_name, last_name, student_id) -> bool:
        return self._update(user_id, first_name=first_name, last_name=last_name, student_id=student_id)

    def update_password(self, user_id, *, password_hash) -> bool:
        return self._update(user_id, password_hash=password_hash)

    def update_role(self, user_id, *, role, club_id) -> bool:
        return self._update(user_id, role=role, club_id=club_id)

    def set_active(self, user_id, *, is_active) -> bool:
        return self._update(user_id, is_active=is_active)

    def delete_by_id(self, user_id: int) -> bool:
        user_id = int(user_id)
        if user_id not in self._s.users:
            return False
        if any(e.created_by == user_id for e in self._s.events.values()):
            raise ValidationError("User still owns events and cannot be deleted")
        del self._s.users[user_id]
        self._s.drop_registrations_where(lambda r: r.user_id == user_id)
        return True

    def list_users(self, *, role=None, club_id=None, active_only=False):
        rows = [
            u
            for u in self._s.users.values()
            if (role is None or u.role == role)
            and (club_id is None or u.club_id == club_id)
            and (not active_only or u.is_active)
        ]
        return sorted(rows, key=lambda u: u.user_id, reverse=True)

    def count_club_admins(self, club_id: int) -> int:
        return sum(
            1
            for u in self._s.users.values()
            if u.club_id == club_id and u.role == Role.CLUB_ADMIN and u.is_active
        )


class InMemoryClubs:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, club_id: int) -> Optional[Club]:
        return self._s.clubs.get(int(club_id))

    def get_by_name(self, name: str) -> Optional[Club]:
        return next((c for c in self._s.clubs.values() if c.name.lower() == name.lower()), None)

    def create_club(self, *, name, description=None, contact_email=None, logo=None) -> int:
        if self.get_by_name(name):
            raise DuplicateRecordError("Club name already exists")
        club_id = self._s.next_id("clubs")
        self._s.clubs[club_id] = Club(
            club_id=club_id, name=name, description=description, contact_email=contact_email, logo=logo
        )
        return club_id

    def update_club(self, club_id, *, name, description, contact_email, logo, is_active) -> bool:
        club = self._s.clubs.get(int(club_id))
        if not club:
            return False
        self._s.clubs[club.club_id] = replace(
            club, name=name, description=description, contact_email=contact_email, logo=logo, is_active=is_active
        )
        return True

    def delete_by_id(self, club_id: int) -> bool:
        club_id = int(club_id)
        if club_id not in self._s.clubs:
            return False
        del self._s.clubs[club_id]
        for event_id in [e.event_id for e in self._s.events.values() if e.club_id == club_id]:
            self._s.drop_event(event_id)
        for user in list(self._s.users.values()):
            if user.club_id == club_id:
                role = Role.STUDENT if user.role == Role.CLUB_ADMIN else user.role
                self._s.users[user.user_id] = replace(user, role=role, club_id=None)
        return True

    def list_clubs(self, *, active_only=True):
        rows = [c for c in self._s.clubs.values() if c.is_active or not active_only]
        return sorted(rows, key=lambda c: c.name)

    def update_stats(self, club_id, stats) -> bool:
        club = self._s.clubs.get(int(club_id))
        if not club:
            return False
        self._s.clubs[club.club_id] = replace(club, stats=stats)
        return True


class InMemoryEvents:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, event_id: int) -> Optional[Event]:
        return self._s.events.get(int(event_id))

    def create_event(self, *, club_id, created_by, details: EventDetails, status=EventStatus.DRAFT) -> int:
        event_id = self._s.next_id("events")
        self._s.events[event_id] = Event(
            event_id=event_id,
            club_id=club_id,
            created_by=created_by,
            status=status,
            **vars(details),
        )
        return event_id

    def _update(self, event_id, **changes) -> bool:
        event = self._s.events.get(int(event_id))
        if not event:
            return False
        self._s.events[event.event_id] = replace(event, **changes)
        return True

    def update_details(self, event_id, details: EventDetails) -> bool:
        return self._update(event_id, **vars(details))

    def set_status(self, event_id, *, status, approved_by=None, approved_at=None) -> bool:
        changes = {"status": status}
        if approved_by is not None:
            changes.update(approved_by=approved_by, approved_at=approved_at)
        return self._update(event_id, **changes)

    def set_qr_code(self, event_id, *, qr_code, qr_code_expiry) -> bool:
        return self._update(event_id, qr_code=qr_code, qr_code_expiry=qr_code_expiry)

    def update_stats(self, event_id, stats) -> bool:
        return self._update(event_id, stats=stats)

    def delete_by_id(self, event_id: int) -> bool:
        if int(event_id) not in self._s.events:
            return False
        self._s.drop_event(int(event_id))
        return True

    def list_events(
        self,
        *,
        status=None,
        club_id=None,
        category=None,
        public_only=False,
        starts_after=None,
        search=None,
        limit=100,
    ):
        needle = (search or "").strip().lower()

        def matches(e: Event) -> bool:
            if status is not None and e.status != status:
                return False
            if club_id is not None and e.club_id != club_id:
                return False
            if category is not None and e.category != category:
                return False
            if public_only and not e.is_public:
                return False
            if starts_after is not None and not e.start_time > starts_after:
                return False
            if needle:
                haystack = " ".join([e.title, e.description, ",".join(e.tags), e.location]).lower()
                return needle in haystack
            return True

        rows = sorted((e for e in self._s.events.values() if matches(e)), key=lambda e: e.start_time)
        return rows[: int(limit)]

    def list_ids(self):
        return sorted(self._s.events)

    def count_active_for_club(self, club_id: int) -> int:
        return sum(
            1 for e in self._s.events.values() if e.club_id == club_id and e.status != EventStatus.CANCELLED
        )


class InMemoryRegistrations:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, registration_id):
        return self._s.registrations.get(int(registration_id))

    def get_for_user_and_event(self, user_id, event_id):
        return next(
            (r for r in self._s.registrations.values() if r.user_id == user_id and r.event_id == event_id),
            None,
        )

    def create_registration(
        self,
        *,
        user_id,
        event_id,
        registered_at,
        status=RegistrationStatus.REGISTERED,
        payment_status=PaymentStatus.NOT_REQUIRED,
        payment_amount=0.0,
        additional_info=None,
    ) -> int:
        if self.get_for_user_and_event(user_id, event_id):
            raise DuplicateRecordError("You are already registered for this event")
        registration_id = self._s.next_id("registrations")
        self._s.registrations[registration_id] = Registration(
            registration_id=registration_id,
            user_id=user_id,
            event_id=event_id,
            registered_at=registered_at,
            status=status,
            payment_status=payment_status,
            payment_amount=payment_amount,
            additional_info=dict(additional_info or {}),
        )
        return registration_id

    def cancel(self, registration_id, *, cancelled_at, reason=None) -> bool:
        reg = self._s.registrations.get(int(registration_id))
        if not reg:
            return False
        self._s.registrations[reg.registration_id] = replace(
            reg,
            status=RegistrationStatus.CANCELLED,
            cancelled_at=reg.cancelled_at or cancelled_at,
            cancellation_reason=reason,
        )
        return True

    def update_payment(self, registration_id, *, payment_status, payment_id, payment_amount) -> bool:
        reg = self._s.registrations.get(int(registration_id))
        if not reg:
            return False
        self._s.registrations[reg.registration_id] = replace(
            reg, payment_status=payment_status, payment_id=payment_id, payment_amount=payment_amount
        )
        return True

    def delete_by_id(self, registration_id) -> bool:
        if int(registration_id) not in self._s.registrations:
            return False
        self._s.drop_registrations_where(lambda r: r.registration_id == int(registration_id))
        return True

    def list_for_event(self, event_id, *, status=None):
        return [
            r
            for r in self._s.registrations.values()
            if r.event_id == event_id and (status is None or r.status == status)
        ]

    def list_for_user(self, user_id, *, status=None):
        return [
            r
            for r in self._s.registrations.values()
            if r.user_id == user_id and (status is None or r.status == status)
        ]

    def count_registered(self, event_id) -> int:
        return len(self.list_for_event(event_id, status=RegistrationStatus.REGISTERED))


class InMemoryAttendance:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, attendance_id):
        return self._s.attendance.get(int(attendance_id))

    def get_for_user_and_event(self, user_id, event_id):
        return next(
            (a for a in self._s.attendance.values() if a.user_id == user_id and a.event_id == event_id),
            None,
        )

    def create_attendance(
        self,
        *,
        user_id,
        event_id,
        registration_id,
        marked_at,
        marked_by,
        method,
        latitude=None,
        longitude=None,
        qr_token=None,
        device=None,
        notes=None,
    ) -> int:
        if self.get_for_user_and_event(user_id, event_id):
            raise DuplicateRecordError("Attendance already marked for this event")
        attendance_id = self._s.next_id("attendance")
        self._s.attendance[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            event_id=event_id,
            registration_id=registration_id,
            marked_at=marked_at,
            marked_by=marked_by,
            method=method,
            latitude=latitude,
            longitude=longitude,
            qr_token=qr_token,
            device=device or DeviceInfo(),
            notes=notes,
        )
        return attendance_id

    def set_verified(self, attendance_id, *, is_verified, notes) -> bool:
        rec = self._s.attendance.get(int(attendance_id))
        if not rec:
            return False
        self._s.attendance[rec.attendance_id] = replace(rec, is_verified=is_verified, notes=notes)
        return True

    def delete_by_id(self, attendance_id) -> bool:
        if int(attendance_id) not in self._s.attendance:
            return False
        self._s.drop_attendance_where(lambda a: a.attendance_id == int(attendance_id))
        return True

    def list_for_event(self, event_id):
        return [a for a in self._s.attendance.values() if a.event_id == event_id]

    def list_for_user(self, user_id):
        return [a for a in self._s.attendance.values() if a.user_id == user_id]

    def count_for_event(self, event_id) -> int:
        return len(self.list_for_event(event_id))

    def method_breakdown(self, event_id):
        return dict(Counter(a.method.value for a in self.list_for_event(event_id)))

    def count_unique_attendees_for_club(self, club_id) -> int:
        club_events = {e.event_id for e in self._s.events.values() if e.club_id == club_id}
        return len({a.user_id for a in self._s.attendance.values() if a.event_id in club_events})


class InMemoryFeedback:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, feedback_id):
        return self._s.feedback.get(int(feedback_id))

    def get_for_user_and_event(self, user_id, event_id):
        return next(
            (f for f in self._s.feedback.values() if f.user_id == user_id and f.event_id == event_id),
            None,
        )

    def create_feedback(
        self,
        *,
        user_id,
        event_id,
        attendance_id,
        rating,
        submitted_at,
        comment=None,
        categories=None,
        would_recommend=None,
        improvements=(),
        is_anonymous=False,
    ) -> int:
        if self.get_for_user_and_event(user_id, event_id):
            raise DuplicateRecordError("You have already submitted feedback for this event")
        feedback_id = self._s.next_id("feedback")
        self._s.feedback[feedback_id] = Feedback(
            feedback_id=feedback_id,
            user_id=user_id,
            event_id=event_id,
            attendance_id=attendance_id,
            rating=rating,
            submitted_at=submitted_at,
            comment=comment,
            categories=categories or CategoryRatings(),
            would_recommend=would_recommend,
            improvements=tuple(improvements),
            is_anonymous=is_anonymous,
        )
        return feedback_id

    def set_moderation(self, feedback_id, *, is_moderated, moderated_by, moderated_at, reason) -> bool:
        fb = self._s.feedback.get(int(feedback_id))
        if not fb:
            return False
        self._s.feedback[fb.feedback_id] = replace(
            fb,
            is_moderated=is_moderated,
            moderated_by=moderated_by,
            moderated_at=moderated_at,
            moderation_reason=reason,
        )
        return True

    def delete_by_id(self, feedback_id) -> bool:
        return self._s.feedback.pop(int(feedback_id), None) is not None

    def list_for_event(self, event_id):
        return [f for f in self._s.feedback.values() if f.event_id == event_id]

    def list_for_user(self, user_id):
        return [f for f in self._s.feedback.values() if f.user_id == user_id]

    def rating_summary(self, event_id):
        ratings = [f.rating for f in self.list_for_event(event_id)]
        if not ratings:
            return 0, None
        return len(ratings), sum(ratings) / len(ratings)


class World:
    """Shortcuts to put rows straight into the store, bypassing the services."""

    def __init__(self, container, now: datetime):
        self.c = container
        self.now = now

    def club(self, name: str = "Coding Club") -> int:
        return self.c.clubs_repo.create_club(name=name, description="Builds things", contact_email="club@campus.edu")

    def user(
        self,
        role: Role = Role.STUDENT,
        *,
        club_id: Optional[int] = None,
        email: Optional[str] = None,
        password: str = "password123",
        first_name: str = "Test",
        last_name: str = "User",
    ) -> SessionUser:
        n = len(self.c.users_repo.list_users()) + 1
        user_id = self.c.users_repo.create_user(
            email=email or f"user{n}@campus.edu",
            password_hash=generate_password_hash(password, method=FAST_HASH),
            first_name=first_name,
            last_name=last_name,
            role=role,
            club_id=club_id,
        )
        user = self.c.users_repo.get_by_id(user_id)
        return SessionUser(user_id=user.user_id, full_name=user.full_name, role=user.role, club_id=user.club_id)

    def details(self, **overrides) -> EventDetails:
        start = overrides.pop("start_time", self.now + timedelta(days=1))
        fields = dict(
            title="Intro to Python",
            description="A hands-on workshop for beginners.",
            start_time=start,
            end_time=start + timedelta(hours=2),
            location="Main Hall",
            category=EventCategory.WORKSHOP,
        )
        fields.update(overrides)
        return EventDetails(**fields)

    def event(self, club_id: int, *, created_by: int, status: EventStatus = EventStatus.PUBLISHED, **overrides) -> int:
        return self.c.events_repo.create_event(
            club_id=club_id, created_by=created_by, details=self.details(**overrides), status=status
        )

    def registration(self, user_id: int, event_id: int) -> int:
        return self.c.registrations_repo.create_registration(
            user_id=user_id, event_id=event_id, registered_at=self.now
        )

    def attendance(self, user_id: int, event_id: int, *, marked_by: Optional[int] = None) -> int:
        reg = self.c.registrations_repo.get_for_user_and_event(user_id, event_id)
        return self.c.attendance_repo.create_attendance(
            user_id=user_id,
            event_id=event_id,
            registration_id=reg.registration_id,
            marked_at=self.now,
            marked_by=marked_by or user_id,
            method=AttendanceMethod.MANUAL,
        )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def container(store):
    return assemble(
        users_repo=InMemoryUsers(store),
        clubs_repo=InMemoryClubs(store),
        events_repo=InMemoryEvents(store),
        registrations_repo=InMemoryRegistrations(store),
        attendance_repo=InMemoryAttendance(store),
        feedback_repo=InMemoryFeedback(store),
        qr_code_ttl_minutes=60,
    )


@pytest.fixture
def world(container, fixed_now) -> World:
    return World(container, fixed_now)


@pytest.fixture
def club_id(world) -> int:
    return world.club()


@pytest.fixture
def super_admin(world) -> SessionUser:
    return world.user(Role.SUPER_ADMIN, email="admin@campus.edu", first_name="Ada", last_name="Admin")


@pytest.fixture
def club_admin(world, club_id) -> SessionUser:
    return world.user(Role.CLUB_ADMIN, club_id=club_id, email="lead@campus.edu", first_name="Cleo", last_name="Lead")


@pytest.fixture
def student(world) -> SessionUser:
    return world.user(Role.STUDENT, email="sam@campus.edu", first_name="Sam", last_name="Student")
