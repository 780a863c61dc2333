from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EventStats:
    """Cached counters of an event, rebuilt from its registration/attendance/feedback rows."""

    registrations: int = 0
    attendance: int = 0
    feedback_count: int = 0
    average_rating: float = 0.0


@dataclass(frozen=True)
class ClubStats:
    """Cached counters of a club, rebuilt from its events, admins and attendees."""

    total_events: int = 0
    total_members: int = 0
    total_attendees: int = 0
