"""Derived-statistics maintenance.

Event and club ``stats`` are caches. Every value is recomputed from the
source rows (no +1/-1 bookkeeping), so a recompute can run any number of
times and concurrent recomputes converge once writes stop. Services call the
``refresh_*`` variants right after a committed write; a failing refresh is
logged and never undoes or fails that write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from loguru import logger

from ..attendance.repository import AttendanceRepository
from ..clubs.repository import ClubRepository
from ..common.numbers import round_one_decimal
from ..core.enums import EventStatus
from ..core.exceptions import NotFoundError
from ..events.repository import EventRepository
from ..feedback.repository import FeedbackRepository
from ..registrations.repository import RegistrationRepository
from ..users.repository import UserRepository
from .model import ClubStats, EventStats


class StatsService:
    def __init__(
        self,
        events: EventRepository,
        clubs: ClubRepository,
        users: UserRepository,
        registrations: RegistrationRepository,
        attendance: AttendanceRepository,
        feedback: FeedbackRepository,
    ):
        self._events = events
        self._clubs = clubs
        self._users = users
        self._registrations = registrations
        self._attendance = attendance
        self._feedback = feedback

    def recompute_event_stats(self, event_id: int, *, now: Optional[datetime] = None) -> EventStats:
        now = now or datetime.now()
        event = self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError(f"Event {event_id} not found")

        feedback_count, mean_rating = self._feedback.rating_summary(event_id)
        stats = EventStats(
            registrations=self._registrations.count_registered(event_id),
            attendance=self._attendance.count_for_event(event_id),
            feedback_count=feedback_count,
            average_rating=round_one_decimal(mean_rating) if feedback_count else 0.0,
        )
        self._events.update_stats(event_id, stats)

        # Saving the event is also when lazy completion applies.
        if event.is_due_for_completion(now):
            self._events.set_status(event_id, status=EventStatus.COMPLETED)
            logger.info("Event {} marked completed", event_id)

        return stats

    def recompute_club_stats(self, club_id: int) -> ClubStats:
        club = self._clubs.get_by_id(club_id)
        if not club:
            raise NotFoundError(f"Club {club_id} not found")

        stats = ClubStats(
            total_events=self._events.count_active_for_club(club_id),
            total_members=self._users.count_club_admins(club_id),
            total_attendees=self._attendance.count_unique_attendees_for_club(club_id),
        )
        self._clubs.update_stats(club_id, stats)
        return stats

    def refresh_event_stats(self, event_id: int, *, now: Optional[datetime] = None) -> Optional[EventStats]:
        try:
            return self.recompute_event_stats(event_id, now=now)
        except Exception:
            logger.exception("Error updating stats of event {}", event_id)
            return None

    def refresh_club_stats(self, club_id: Optional[int]) -> Optional[ClubStats]:
        if club_id is None:
            return None
        try:
            return self.recompute_club_stats(club_id)
        except Exception:
            logger.exception("Error updating stats of club {}", club_id)
            return None

    def rebuild_all(self, *, now: Optional[datetime] = None) -> tuple[int, int]:
        """Recompute every event and club; returns (events, clubs) refreshed."""
        events_done = sum(
            1 for event_id in self._events.list_ids() if self.refresh_event_stats(event_id, now=now) is not None
        )
        clubs_done = sum(
            1 for club in self._clubs.list_clubs(active_only=False) if self.refresh_club_stats(club.club_id) is not None
        )
        return events_done, clubs_done
