"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI (or any view) and the application layer
without exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CartLineDTO:
    """Output: a single cart line as displayed to the user."""

    product_id: int
    name: str
    size: str
    color: str
    quantity: int
    unit_price: str  # formatted, e.g. "R$ 15.00"
    line_total: str


@dataclass(frozen=True)
class CartDTO:
    lines: list[CartLineDTO]
    total_items: int
    subtotal: str


@dataclass(frozen=True)
class ShippingOptionDTO:
    service_id: str
    display_name: str
    price: str
    estimated_days: int


@dataclass(frozen=True)
class CheckoutView:
    """Output: everything a checkout screen renders.

    ``installment_amount`` is set once a card method is selected.
    ``countdown`` is only set while an instant-transfer payment awaits
    the payer; ``bank_slip_url`` only once a slip has been issued.
    """

    state: str
    subtotal: str
    discount: str
    shipping: str
    total: str
    shipping_service: str | None = None
    shipping_options: tuple[ShippingOptionDTO, ...] = ()
    coupon_code: str | None = None
    order_id: int | None = None
    installments: int = 1
    installment_amount: str | None = None
    payment_id: int | None = None
    payment_status: str | None = None
    qr_image: str | None = None
    pay_code: str | None = None
    countdown: str | None = None
    bank_slip_url: str | None = None
    error: str | None = None
