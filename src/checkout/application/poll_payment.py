"""Application service: Payment Status Poller.

Each poll runs as its own ``asyncio.Task`` wrapped in a PollHandle that
the owner cancels when the screen goes away.  A poll ends on a terminal
status, on its deadline, on cancellation, or after too many consecutive
failed ticks.  A single failed tick is logged and retried on the next
interval.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable

from checkout.application.clock import Clock, Sleep, real_sleep, utc_now
from checkout.domain.exceptions import DomainException
from checkout.domain.gateway.payment_gateway import PaymentGateway
from checkout.domain.model.payment import Payment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    interval: float = 5.0
    timeout: float = 300.0
    max_consecutive_failures: int = 12


INSTANT_TRANSFER_POLICY = PollPolicy(interval=5.0, timeout=300.0)
CARD_IN_PROCESS_POLICY = PollPolicy(interval=5.0, timeout=600.0)


class PollOutcome(Enum):
    TERMINAL = "terminal"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PollHandle:
    """Owner-side view of a running poll."""

    def __init__(self, payment_id: int, task: asyncio.Task) -> None:
        self.payment_id = payment_id
        self._task = task

    @property
    def running(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            logger.debug("Cancelling poll for payment #%s", self.payment_id)
            self._task.cancel()

    async def wait(self) -> PollOutcome:
        await asyncio.wait({self._task})
        if self._task.cancelled():
            return PollOutcome.CANCELLED
        return self._task.result()


class PaymentStatusPoller:

    def __init__(
        self,
        gateway: PaymentGateway,
        clock: Clock = utc_now,
        sleep: Sleep = real_sleep,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self._sleep = sleep

    def start(
        self,
        payment_id: int,
        policy: PollPolicy,
        on_terminal: Callable[[Payment], None],
        on_update: Callable[[Payment], None] | None = None,
    ) -> PollHandle:
        """Schedule the poll on the running loop and return its handle."""
        task = asyncio.ensure_future(
            self.poll(payment_id, policy, on_terminal, on_update)
        )
        return PollHandle(payment_id, task)

    async def poll(
        self,
        payment_id: int,
        policy: PollPolicy,
        on_terminal: Callable[[Payment], None],
        on_update: Callable[[Payment], None] | None = None,
    ) -> PollOutcome:
        deadline = self._clock() + timedelta(seconds=policy.timeout)
        failures = 0
        logger.info(
            "Polling payment #%s every %ss for up to %ss",
            payment_id, policy.interval, policy.timeout,
        )

        while True:
            try:
                payment = await self._gateway.get_payment(payment_id)
            except DomainException as exc:
                failures += 1
                logger.warning(
                    "Status check %d for payment #%s failed: %s", failures, payment_id, exc
                )
                if failures >= policy.max_consecutive_failures:
                    logger.error("Giving up on payment #%s after %d failures", payment_id, failures)
                    return PollOutcome.FAILED
            else:
                failures = 0
                if on_update is not None:
                    on_update(payment)
                if payment.is_terminal:
                    logger.info("Payment #%s reached %s", payment_id, payment.status.value)
                    on_terminal(payment)
                    return PollOutcome.TERMINAL

            remaining = (deadline - self._clock()).total_seconds()
            if remaining <= 0:
                logger.info("Polling payment #%s timed out", payment_id)
                return PollOutcome.TIMED_OUT
            await self._sleep(min(policy.interval, remaining))
