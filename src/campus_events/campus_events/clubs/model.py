from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..stats.model import ClubStats


@dataclass(frozen=True)
class Club:
    club_id: int
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    contact_email: Optional[str] = None
    is_active: bool = True
    stats: ClubStats = field(default_factory=ClubStats)
    created_at: Optional[datetime] = None
