"""Coupon discount applied to a specific cart subtotal."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.value_objects import Money


class CouponRejection(Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MINIMUM_NOT_MET = "minimum_not_met"
    ALREADY_USED = "already_used"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"

    @staticmethod
    def from_backend(error: str | None) -> CouponRejection:
        """Map a backend error code or message onto a reason.

        The backend sends either a machine code or a human message; the
        message keywords are matched so older deployments still map.
        """
        if not error:
            return CouponRejection.UNKNOWN
        text = error.strip().lower()
        for reason in CouponRejection:
            if text == reason.value:
                return reason
        for keyword, reason in _MESSAGE_KEYWORDS:
            if keyword in text:
                return reason
        return CouponRejection.UNKNOWN


_MESSAGE_KEYWORDS = (
    ("não encontrado", CouponRejection.NOT_FOUND),
    ("not found", CouponRejection.NOT_FOUND),
    ("validade", CouponRejection.EXPIRED),
    ("expired", CouponRejection.EXPIRED),
    ("mínimo", CouponRejection.MINIMUM_NOT_MET),
    ("minimum", CouponRejection.MINIMUM_NOT_MET),
    ("limite de usos", CouponRejection.ALREADY_USED),
    ("already used", CouponRejection.ALREADY_USED),
    ("não está ativo", CouponRejection.INACTIVE),
    ("inactive", CouponRejection.INACTIVE),
)


def normalize_code(code: str) -> str:
    normalized = (code or "").strip().upper()
    if not normalized:
        raise ValidationError("Coupon code is required", {"coupon_code": "is required"})
    return normalized


@dataclass(frozen=True)
class AppliedCoupon:
    """A validated discount.

    Remembers the subtotal it was validated against: once the cart
    subtotal differs the discount is stale and must be re-validated.
    """

    code: str
    subtotal: Money
    discount_amount: Money

    @staticmethod
    def for_subtotal(code: str, subtotal: Money, discount: Money) -> AppliedCoupon:
        """Cap the discount at the subtotal and round it to cents."""
        capped = discount if discount <= subtotal else subtotal
        return AppliedCoupon(code=code, subtotal=subtotal, discount_amount=capped.rounded())

    @property
    def final_total(self) -> Money:
        return self.subtotal - self.discount_amount

    def is_stale_for(self, subtotal: Money) -> bool:
        return subtotal != self.subtotal
