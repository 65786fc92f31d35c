"""PendingPaymentHandle — the client-local pointer to an in-flight payment.

Holds only what is needed to resume after a reload; nothing sensitive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from checkout.domain.model.payment import PaymentMethod


@dataclass(frozen=True)
class PendingPaymentHandle:
    payment_id: int
    method: PaymentMethod
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
