"""Application service: Coupon Resolver."""

from __future__ import annotations

from checkout.domain.exceptions import CouponRejected
from checkout.domain.gateway.coupon_gateway import CouponGateway
from checkout.domain.model.coupon import AppliedCoupon, CouponRejection, normalize_code
from checkout.domain.model.value_objects import Money


class CouponResolver:

    def __init__(self, gateway: CouponGateway) -> None:
        self._gateway = gateway

    async def validate(self, code: str, subtotal: Money) -> AppliedCoupon:
        """Validate ``code`` for ``subtotal`` or raise CouponRejected.

        The backend's discount is capped locally so the final total can
        never go negative.
        """
        normalized = normalize_code(code)
        verdict = await self._gateway.validate(normalized, subtotal)
        if not verdict.valid or verdict.discount_amount is None:
            reason = CouponRejection.from_backend(verdict.error)
            raise CouponRejected(reason, verdict.error)
        return AppliedCoupon.for_subtotal(normalized, subtotal, verdict.discount_amount)
