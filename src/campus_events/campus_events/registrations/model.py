from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ..core.enums import PaymentStatus, RegistrationStatus


@dataclass(frozen=True)
class Registration:
    registration_id: int
    user_id: int
    event_id: int
    registered_at: datetime
    status: RegistrationStatus = RegistrationStatus.REGISTERED
    payment_status: PaymentStatus = PaymentStatus.NOT_REQUIRED
    payment_id: Optional[str] = None
    payment_amount: float = 0.0
    additional_info: Dict[str, str] = field(default_factory=dict)
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == RegistrationStatus.REGISTERED
