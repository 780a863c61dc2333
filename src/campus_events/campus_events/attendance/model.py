from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ..core.enums import AttendanceMethod


@dataclass(frozen=True)
class DeviceInfo:
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    platform: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one check-in of a user at an event."""

    attendance_id: int
    user_id: int
    event_id: int
    registration_id: int
    marked_at: datetime
    marked_by: int
    method: AttendanceMethod
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    qr_token: Optional[str] = None
    is_verified: bool = True
    device: DeviceInfo = field(default_factory=DeviceInfo)
    notes: Optional[str] = None


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model for the event attendance report."""

    total_registrations: int
    total_attendance: int
    attendance_rate: float
    method_breakdown: Dict[str, int]
