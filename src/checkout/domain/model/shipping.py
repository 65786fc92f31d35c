"""Shipping options quoted by carriers, plus the synthetic store pickup."""

from __future__ import annotations

from dataclasses import dataclass

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.value_objects import Money, PostalCode

STORE_PICKUP_ID = "store_pickup"


@dataclass(frozen=True)
class ShippingOption:
    service_id: str
    display_name: str
    price: Money
    estimated_days: int
    carrier: str

    def __post_init__(self) -> None:
        if self.estimated_days < 0:
            raise ValidationError("Estimated delivery days cannot be negative")

    @property
    def is_store_pickup(self) -> bool:
        return self.service_id == STORE_PICKUP_ID


STORE_PICKUP = ShippingOption(
    service_id=STORE_PICKUP_ID,
    display_name="Retirar na loja",
    price=Money.zero(),
    estimated_days=0,
    carrier="store",
)


@dataclass(frozen=True)
class PackageDimensions:
    """Box dimensions in centimetres."""

    height: int = 5
    width: int = 20
    length: int = 30


@dataclass(frozen=True)
class QuoteItem:
    product_id: int
    quantity: int
    unit_price: Money


@dataclass(frozen=True)
class ShippingQuoteRequest:
    origin_postal_code: PostalCode
    destination_postal_code: PostalCode
    weight_grams: int
    dimensions: PackageDimensions
    declared_value: Money
    items: tuple[QuoteItem, ...] = ()


def with_store_pickup(options: list[ShippingOption]) -> list[ShippingOption]:
    """Return the options with store pickup present exactly once."""
    if any(option.is_store_pickup for option in options):
        return list(options)
    return [*options, STORE_PICKUP]
