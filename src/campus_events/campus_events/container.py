from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .clubs.mysql_club_repository import MySQLClubRepository
from .clubs.repository import ClubRepository
from .clubs.service import ClubService
from .core.constants import DEFAULT_QR_CODE_TTL_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .events.service import EventService
from .feedback.mysql_feedback_repository import MySQLFeedbackRepository
from .feedback.repository import FeedbackRepository
from .feedback.service import FeedbackService
from .registrations.mysql_registration_repository import MySQLRegistrationRepository
from .registrations.repository import RegistrationRepository
from .registrations.service import RegistrationService
from .stats.service import StatsService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    clubs_repo: ClubRepository
    events_repo: EventRepository
    registrations_repo: RegistrationRepository
    attendance_repo: AttendanceRepository
    feedback_repo: FeedbackRepository

    stats_service: StatsService
    auth_service: AuthService
    user_service: UserService
    club_service: ClubService
    event_service: EventService
    registration_service: RegistrationService
    attendance_service: AttendanceService
    feedback_service: FeedbackService


def assemble(
    *,
    users_repo: UserRepository,
    clubs_repo: ClubRepository,
    events_repo: EventRepository,
    registrations_repo: RegistrationRepository,
    attendance_repo: AttendanceRepository,
    feedback_repo: FeedbackRepository,
    conn: Optional[DatabaseConnection] = None,
    qr_code_ttl_minutes: int = DEFAULT_QR_CODE_TTL_MINUTES,
) -> Container:
    """Wire services on top of any set of repositories (MySQL in the app, in-memory in tests)."""
    stats_service = StatsService(
        events_repo, clubs_repo, users_repo, registrations_repo, attendance_repo, feedback_repo
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        clubs_repo=clubs_repo,
        events_repo=events_repo,
        registrations_repo=registrations_repo,
        attendance_repo=attendance_repo,
        feedback_repo=feedback_repo,
        stats_service=stats_service,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo, clubs_repo, registrations_repo, events_repo, stats_service),
        club_service=ClubService(clubs_repo, stats_service),
        event_service=EventService(
            events_repo, clubs_repo, stats_service, qr_code_ttl_minutes=qr_code_ttl_minutes
        ),
        registration_service=RegistrationService(registrations_repo, events_repo, users_repo, stats_service),
        attendance_service=AttendanceService(attendance_repo, registrations_repo, events_repo, stats_service),
        feedback_service=FeedbackService(feedback_repo, attendance_repo, events_repo, stats_service),
    )


def build_container(*, db_config: dict, qr_code_ttl_minutes: int = DEFAULT_QR_CODE_TTL_MINUTES) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return assemble(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        clubs_repo=MySQLClubRepository(conn),
        events_repo=MySQLEventRepository(conn),
        registrations_repo=MySQLRegistrationRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        feedback_repo=MySQLFeedbackRepository(conn),
        qr_code_ttl_minutes=qr_code_ttl_minutes,
    )
