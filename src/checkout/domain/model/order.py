"""Order — a committed purchase, owned by the backend system of record.

Items and shipping address are immutable snapshots taken when the order
is drafted, so an order stays interpretable even if the product or the
saved address is later edited or deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.address import Address
from checkout.domain.model.cart import Cart
from checkout.domain.model.coupon import AppliedCoupon
from checkout.domain.model.payment import PaymentMethod
from checkout.domain.model.shipping import ShippingOption
from checkout.domain.model.value_objects import Money, Quantity

MAX_LINE_ITEMS = 50


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a cart line at order-creation time."""

    product_id: int
    name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    size: str = ""
    color: str = ""
    variant_id: int | None = None

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Client view of a persisted order.

    Use ``Order.draft()`` to build the request for a new order; the
    backend assigns ``id`` and the authoritative ``total``.
    """

    id: int | None
    items: tuple[OrderLineItem, ...]
    shipping_address: Address
    shipping_cost: Money
    shipping_method: str
    payment_method: PaymentMethod
    total: Money
    coupon_code: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def draft(
        cart: Cart,
        address: Address,
        shipping: ShippingOption,
        payment_method: PaymentMethod,
        coupon: AppliedCoupon | None = None,
    ) -> Order:
        """Snapshot the cart and address into a new, unsaved order."""
        if cart.is_empty:
            raise ValidationError("Order must contain at least one item", {"cart": "is empty"})
        if len(cart.lines) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")
        if coupon is not None and coupon.is_stale_for(cart.subtotal):
            raise ValidationError(
                "Coupon must be re-applied after the cart changed",
                {"coupon_code": "must be re-applied"},
            )

        items = tuple(
            OrderLineItem(
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                size=line.size,
                color=line.color,
                variant_id=line.variant_id,
            )
            for line in cart.lines
        )
        merchandise = coupon.final_total if coupon else cart.subtotal
        return Order(
            id=None,
            items=items,
            shipping_address=address.snapshot(),
            shipping_cost=shipping.price,
            shipping_method=shipping.service_id,
            payment_method=payment_method,
            total=merchandise + shipping.price,
            coupon_code=coupon.code if coupon else None,
        )

    @property
    def subtotal(self) -> Money:
        result = Money.zero()
        for item in self.items:
            result = result + item.line_total
        return result
