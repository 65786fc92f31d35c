"""Remote order creation."""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.order import Order


class OrderGateway(ABC):

    @abstractmethod
    async def create_order(self, order: Order) -> Order:
        """Persist a drafted order; returns it with id and authoritative total.

        Not idempotent.  Raises RateLimited when the backend answers 429.
        """
