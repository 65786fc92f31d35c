"""Remote carrier quoting."""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.shipping import ShippingOption, ShippingQuoteRequest


class ShippingGateway(ABC):

    @abstractmethod
    async def quote(self, request: ShippingQuoteRequest) -> list[ShippingOption]:
        """Return the carrier options for a package."""
