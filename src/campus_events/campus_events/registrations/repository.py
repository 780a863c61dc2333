from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import PaymentStatus, RegistrationStatus
from .model import Registration


class RegistrationRepository(Protocol):
    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        raise NotImplementedError

    def get_for_user_and_event(self, user_id: int, event_id: int) -> Optional[Registration]:
        raise NotImplementedError

    def create_registration(
        self,
        *,
        user_id: int,
        event_id: int,
        registered_at: datetime,
        status: RegistrationStatus = RegistrationStatus.REGISTERED,
        payment_status: PaymentStatus = PaymentStatus.NOT_REQUIRED,
        payment_amount: float = 0.0,
        additional_info: Optional[Dict[str, str]] = None,
    ) -> int:
        """Insert a row; raises DuplicateRecordError when the (user, event) pair exists."""

        raise NotImplementedError

    def cancel(self, registration_id: int, *, cancelled_at: datetime, reason: Optional[str] = None) -> bool:
        raise NotImplementedError

    def update_payment(
        self,
        registration_id: int,
        *,
        payment_status: PaymentStatus,
        payment_id: Optional[str],
        payment_amount: float,
    ) -> bool:
        raise NotImplementedError

    def delete_by_id(self, registration_id: int) -> bool:
        raise NotImplementedError

    def list_for_event(self, event_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[Registration]:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[Registration]:
        raise NotImplementedError

    def count_registered(self, event_id: int) -> int:
        """Rows of ``event_id`` with status ``registered``."""

        raise NotImplementedError
