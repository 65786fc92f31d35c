"""Domain service: checkout totals.

The same computation feeds both what the user is shown and the order
draft, so the displayed total and the charged total cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass

from checkout.domain.model.coupon import AppliedCoupon
from checkout.domain.model.shipping import ShippingOption
from checkout.domain.model.value_objects import Money


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Money
    discount: Money
    shipping: Money

    @property
    def merchandise(self) -> Money:
        """Subtotal after the coupon discount, before shipping."""
        return self.subtotal - self.discount

    @property
    def total(self) -> Money:
        return self.merchandise + self.shipping


def compute_totals(
    subtotal: Money,
    coupon: AppliedCoupon | None = None,
    shipping: ShippingOption | None = None,
) -> CheckoutTotals:
    """Totals for the current selection.

    A coupon validated against a different subtotal is ignored rather
    than trusted.
    """
    discount = Money.zero()
    if coupon is not None and not coupon.is_stale_for(subtotal):
        discount = coupon.discount_amount
    return CheckoutTotals(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping.price if shipping else Money.zero(),
    )
