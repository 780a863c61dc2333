from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    STUDENT = "student"
    CLUB_ADMIN = "club_admin"
    FACULTY = "faculty"
    SUPER_ADMIN = "super_admin"


class EventStatus(str, Enum):
    """Stored lifecycle status of an event."""

    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EventCategory(str, Enum):
    ACADEMIC = "academic"
    CULTURAL = "cultural"
    SPORTS = "sports"
    TECHNICAL = "technical"
    SOCIAL = "social"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    COMPETITION = "competition"


class RegistrationWindow(str, Enum):
    """Whether an event still accepts registrations (derived, never stored)."""

    OPEN = "open"
    CLOSED = "closed"
    FULL = "full"


class LifecycleStatus(str, Enum):
    """Event status as seen by a reader at a given moment (derived)."""

    DRAFT = "draft"
    CANCELLED = "cancelled"
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"
    CANCELLED = "cancelled"
    WAITLISTED = "waitlisted"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    NOT_REQUIRED = "not_required"


class AttendanceMethod(str, Enum):
    QR_SCAN = "qr_scan"
    MANUAL = "manual"
    BULK_UPLOAD = "bulk_upload"


class ImprovementArea(str, Enum):
    CONTENT = "content"
    TIMING = "timing"
    VENUE = "venue"
    ORGANIZATION = "organization"
    COMMUNICATION = "communication"
    OTHER = "other"
