"""Application service: Shipping Resolver.

Never lets a quoting outage block checkout: on any failure the only
option offered is store pickup.
"""

from __future__ import annotations

import logging

from checkout.domain.exceptions import DomainException
from checkout.domain.gateway.shipping_gateway import ShippingGateway
from checkout.domain.model.cart import Cart
from checkout.domain.model.shipping import (
    STORE_PICKUP,
    PackageDimensions,
    QuoteItem,
    ShippingOption,
    ShippingQuoteRequest,
    with_store_pickup,
)
from checkout.domain.model.value_objects import PostalCode

logger = logging.getLogger(__name__)


class ShippingResolver:

    def __init__(
        self,
        gateway: ShippingGateway,
        origin_postal_code: PostalCode,
        dimensions: PackageDimensions | None = None,
    ) -> None:
        self._gateway = gateway
        self._origin = origin_postal_code
        self._dimensions = dimensions or PackageDimensions()

    async def quote(self, destination: PostalCode, cart: Cart) -> list[ShippingOption]:
        request = ShippingQuoteRequest(
            origin_postal_code=self._origin,
            destination_postal_code=destination,
            weight_grams=cart.total_weight_grams,
            dimensions=self._dimensions,
            declared_value=cart.subtotal,
            items=tuple(
                QuoteItem(
                    product_id=line.product_id,
                    quantity=line.quantity.value,
                    unit_price=line.unit_price,
                )
                for line in cart.lines
            ),
        )
        try:
            options = await self._gateway.quote(request)
        except DomainException as exc:
            logger.warning("Shipping quote failed for %s, offering pickup only: %s", destination, exc)
            return [STORE_PICKUP]
        return with_store_pickup(options)

    @staticmethod
    def default_option(options: list[ShippingOption]) -> ShippingOption | None:
        return options[0] if options else None
