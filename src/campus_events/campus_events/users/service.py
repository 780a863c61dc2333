from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from loguru import logger
from werkzeug.security import check_password_hash, generate_password_hash

from ..clubs.repository import ClubRepository
from ..common.access import require_role
from ..common.validators import (
    normalize_student_id,
    require_email,
    require_length_between,
    require_min_length,
)
from ..core.constants import NAME_MAX_LENGTH, NAME_MIN_LENGTH, PASSWORD_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from ..events.repository import EventRepository
from ..registrations.repository import RegistrationRepository
from ..stats.service import StatsService
from .model import SessionUser, User
from .repository import UserRepository


def to_session_user(user: User) -> SessionUser:
    return SessionUser(user_id=user.user_id, full_name=user.full_name, role=user.role, club_id=user.club_id)


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email(str(email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, str(password or ""))
        except ValueError:
            # e.g. placeholder hashes or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")

        return to_session_user(user)

    def load_session_user(self, user_id: int) -> SessionUser:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise AuthenticationError("Session is no longer valid")
        return to_session_user(user)


class UserService:
    """Use case: manage accounts (self-service and super admin)."""

    def __init__(
        self,
        users: UserRepository,
        clubs: ClubRepository,
        registrations: RegistrationRepository,
        events: EventRepository,
        stats: StatsService,
    ):
        self._users = users
        self._clubs = clubs
        self._registrations = registrations
        self._events = events
        self._stats = stats

    def _get(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def _check_club_for_role(self, role: Role, club_id: Optional[int]) -> Optional[int]:
        if role != Role.CLUB_ADMIN:
            return None
        if not club_id:
            raise ValidationError("Club is required for club admins")
        if not self._clubs.get_by_id(int(club_id)):
            raise NotFoundError("Club not found")
        return int(club_id)

    def _check_student_id_free(self, student_id: Optional[str], *, user_id: Optional[int] = None) -> None:
        if not student_id:
            return
        holder = self._users.get_by_student_id(student_id)
        if holder and holder.user_id != user_id:
            raise DuplicateRecordError("Student ID is already registered")

    def create_account(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        student_id: Optional[str] = None,
        role: Role = Role.STUDENT,
        club_id: Optional[int] = None,
    ) -> int:
        email = require_email(email)
        require_min_length(password, "Password", PASSWORD_MIN_LENGTH)
        first_name = require_length_between(first_name, "First name", NAME_MIN_LENGTH, NAME_MAX_LENGTH)
        last_name = require_length_between(last_name, "Last name", NAME_MIN_LENGTH, NAME_MAX_LENGTH)
        student_id = normalize_student_id(student_id)
        club_id = self._check_club_for_role(role, club_id)

        if self._users.get_by_email(email):
            raise DuplicateRecordError("Email is already registered")
        self._check_student_id_free(student_id)

        user_id = self._users.create_user(
            email=email,
            password_hash=generate_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            student_id=student_id,
            club_id=club_id,
        )
        logger.info("Created user {} with role {}", user_id, role.value)

        if role == Role.CLUB_ADMIN:
            self._stats.refresh_club_stats(club_id)
        return user_id

    def register_student(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        student_id: Optional[str] = None,
    ) -> int:
        """Public sign-up: always a student account."""
        return self.create_account(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            student_id=student_id,
            role=Role.STUDENT,
        )

    def create_user_as_admin(self, actor: SessionUser, **fields) -> int:
        require_role(actor, Role.SUPER_ADMIN)
        return self.create_account(**fields)

    def get_user(self, user_id: int) -> User:
        return self._get(user_id)

    def update_profile(
        self,
        actor: SessionUser,
        user_id: int,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> User:
        """``None`` keeps the current value; an empty ``student_id`` clears it."""
        if actor.user_id != int(user_id) and actor.role != Role.SUPER_ADMIN:
            raise AuthorizationError("You can only edit your own profile")
        user = self._get(user_id)

        first_name = require_length_between(
            user.first_name if first_name is None else first_name, "First name", NAME_MIN_LENGTH, NAME_MAX_LENGTH
        )
        last_name = require_length_between(
            user.last_name if last_name is None else last_name, "Last name", NAME_MIN_LENGTH, NAME_MAX_LENGTH
        )
        student_id = user.student_id if student_id is None else normalize_student_id(student_id)
        self._check_student_id_free(student_id, user_id=int(user_id))

        self._users.update_profile(int(user_id), first_name=first_name, last_name=last_name, student_id=student_id)
        return self._get(user_id)

    def change_password(self, actor: SessionUser, *, current_password: str, new_password: str) -> None:
        user = self._get(actor.user_id)
        if not check_password_hash(user.password_hash, current_password or ""):
            raise AuthenticationError("Current password is incorrect")
        require_min_length(new_password, "Password", PASSWORD_MIN_LENGTH)
        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))

    def assign_role(self, actor: SessionUser, user_id: int, *, role: Role, club_id: Optional[int] = None) -> User:
        require_role(actor, Role.SUPER_ADMIN)
        user = self._get(user_id)
        club_id = self._check_club_for_role(role, club_id)

        self._users.update_role(user.user_id, role=role, club_id=club_id)
        logger.info("User {} role changed {} -> {}", user.user_id, user.role.value, role.value)

        self._refresh_clubs_of(user, extra_club_ids=(club_id,))
        return self._get(user_id)

    def set_active(self, actor: SessionUser, user_id: int, *, is_active: bool) -> User:
        require_role(actor, Role.SUPER_ADMIN)
        user = self._get(user_id)
        if user.user_id == actor.user_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")

        self._users.set_active(user.user_id, is_active=is_active)
        self._refresh_clubs_of(user)
        return self._get(user_id)

    def delete_user(self, actor: SessionUser, user_id: int, *, now: Optional[datetime] = None) -> None:
        require_role(actor, Role.SUPER_ADMIN)
        user = self._get(user_id)
        if user.role == Role.SUPER_ADMIN:
            raise ValidationError("Super admin accounts cannot be deleted")

        # Registrations cascade to attendance and feedback.
        event_ids = sorted({r.event_id for r in self._registrations.list_for_user(user.user_id)})

        if not self._users.delete_by_id(user.user_id):
            raise ValidationError("Failed to delete user")
        logger.info("Deleted user {}", user.user_id)

        club_ids = set()
        for event_id in event_ids:
            self._stats.refresh_event_stats(event_id, now=now)
            event = self._events.get_by_id(event_id)
            if event:
                club_ids.add(event.club_id)
        self._refresh_clubs_of(user, extra_club_ids=club_ids)

    def list_users(
        self,
        actor: SessionUser,
        *,
        role: Optional[Role] = None,
        club_id: Optional[int] = None,
    ) -> Sequence[User]:
        require_role(actor, Role.SUPER_ADMIN, Role.FACULTY)
        return self._users.list_users(role=role, club_id=club_id)

    def _refresh_clubs_of(self, user: User, *, extra_club_ids: Iterable[Optional[int]] = ()) -> None:
        club_ids = {club_id for club_id in extra_club_ids if club_id}
        if user.role == Role.CLUB_ADMIN and user.club_id:
            club_ids.add(user.club_id)
        for club_id in sorted(club_ids):
            self._stats.refresh_club_stats(club_id)
