"""Remote coupon validation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.domain.model.value_objects import Money


@dataclass(frozen=True)
class CouponValidation:
    """Raw backend verdict, before the resolver enforces its invariants."""

    valid: bool
    discount_amount: Money | None = None
    error: str | None = None


class CouponGateway(ABC):

    @abstractmethod
    async def validate(self, code: str, subtotal: Money) -> CouponValidation:
        """Ask the backend whether ``code`` applies to ``subtotal``."""
