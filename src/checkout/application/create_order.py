"""Application service: Create Order use case.

Order creation is the one non-idempotent step of checkout.  An attempt
lock guarantees at most one ``create_order`` request per checkout
attempt, however many times submit is triggered.
"""

from __future__ import annotations

import logging
from enum import Enum

from checkout.domain.exceptions import CheckoutInProgress
from checkout.domain.gateway.order_gateway import OrderGateway
from checkout.domain.model.order import Order

logger = logging.getLogger(__name__)


class _LockState(Enum):
    FREE = "free"
    HELD = "held"
    USED = "used"


class AttemptLock:
    """Guards a non-idempotent operation for one checkout attempt.

    FREE -> HELD while the operation runs; HELD -> USED on success or
    back to FREE on failure so the user can retry that step explicitly.
    """

    def __init__(self) -> None:
        self._state = _LockState.FREE

    @property
    def held(self) -> bool:
        return self._state is _LockState.HELD

    @property
    def used(self) -> bool:
        return self._state is _LockState.USED

    def acquire(self) -> None:
        if self._state is _LockState.HELD:
            raise CheckoutInProgress("Order creation already in progress")
        if self._state is _LockState.USED:
            raise CheckoutInProgress("An order was already created for this checkout")
        self._state = _LockState.HELD

    def release(self, succeeded: bool) -> None:
        self._state = _LockState.USED if succeeded else _LockState.FREE


class OrderCreator:

    def __init__(self, gateway: OrderGateway, lock: AttemptLock | None = None) -> None:
        self._gateway = gateway
        self._lock = lock or AttemptLock()

    @property
    def lock(self) -> AttemptLock:
        return self._lock

    async def create(self, draft: Order) -> Order:
        """Persist ``draft``; a second call for the same attempt is refused."""
        self._lock.acquire()
        try:
            order = await self._gateway.create_order(draft)
        except BaseException:
            self._lock.release(succeeded=False)
            raise
        self._lock.release(succeeded=True)
        logger.info("Order #%s created (total=%s)", order.id, order.total)
        return order
