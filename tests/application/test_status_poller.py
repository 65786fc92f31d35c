"""Tests for the payment status poller and the expiry countdown."""

import asyncio
from datetime import timedelta

from checkout.application.countdown import EXPIRED_LABEL, Countdown
from checkout.application.poll_payment import PaymentStatusPoller, PollOutcome, PollPolicy
from checkout.domain.model.payment import PaymentMethod, PaymentStatus
from checkout.domain.model.value_objects import Money
from tests.fakes import FakeClock, FakePaymentGateway


def _setup():
    clock = FakeClock()
    gateway = FakePaymentGateway(clock)
    payment = asyncio.run(
        gateway.create_payment(1, PaymentMethod.CREDIT_CARD, Money.of("50.00"), 1)
    )
    poller = PaymentStatusPoller(gateway, clock=clock, sleep=clock.sleep)
    return poller, gateway, clock, payment


class TestPoller:

    def test_stops_on_terminal_status(self):
        poller, gateway, clock, payment = _setup()
        gateway.status_script = [PaymentStatus.PENDING, PaymentStatus.IN_PROCESS, PaymentStatus.APPROVED]
        seen = []
        terminal = []

        outcome = asyncio.run(
            poller.poll(payment.id, PollPolicy(interval=5, timeout=300), terminal.append, seen.append)
        )

        assert outcome is PollOutcome.TERMINAL
        assert [p.status for p in seen] == [
            PaymentStatus.PENDING, PaymentStatus.IN_PROCESS, PaymentStatus.APPROVED,
        ]
        assert terminal[0].status is PaymentStatus.APPROVED
        assert clock.sleeps == [5, 5]

    def test_times_out_at_deadline(self):
        poller, gateway, clock, payment = _setup()
        outcome = asyncio.run(
            poller.poll(payment.id, PollPolicy(interval=5, timeout=12), lambda p: None)
        )
        assert outcome is PollOutcome.TIMED_OUT
        assert clock.sleeps == [5, 5, 2]
        assert gateway.calls.count("get_payment") == 4

    def test_single_failed_tick_is_retried(self):
        poller, gateway, _, payment = _setup()
        gateway.get_failures = 2
        gateway.schedule(0, PaymentStatus.APPROVED)
        terminal = []
        outcome = asyncio.run(
            poller.poll(payment.id, PollPolicy(interval=5, timeout=60), terminal.append)
        )
        assert outcome is PollOutcome.TERMINAL
        assert len(terminal) == 1

    def test_gives_up_after_consecutive_failures(self):
        poller, gateway, _, payment = _setup()
        gateway.get_failures = 100
        outcome = asyncio.run(
            poller.poll(
                payment.id,
                PollPolicy(interval=1, timeout=600, max_consecutive_failures=3),
                lambda p: None,
            )
        )
        assert outcome is PollOutcome.FAILED
        assert gateway.calls.count("get_payment") == 3

    def test_cancel_stops_polling(self):
        poller, gateway, _, payment = _setup()

        async def scenario():
            handle = poller.start(payment.id, PollPolicy(interval=5, timeout=300), lambda p: None)
            await asyncio.sleep(0)
            handle.cancel()
            return await handle.wait(), handle.running

        outcome, running = asyncio.run(scenario())
        assert outcome is PollOutcome.CANCELLED
        assert not running

    def test_terminal_status_never_reported_twice(self):
        poller, gateway, _, payment = _setup()
        gateway.status_script = [PaymentStatus.APPROVED, PaymentStatus.PENDING]
        terminal = []
        asyncio.run(poller.poll(payment.id, PollPolicy(), terminal.append))
        assert len(terminal) == 1
        assert gateway.status_script == [PaymentStatus.PENDING]


# ── Countdown ────────────────────────────────────────────────────────────────


class TestCountdown:

    def test_minutes_and_seconds(self):
        clock = FakeClock()
        countdown = Countdown(clock() + timedelta(minutes=4, seconds=5), clock)
        assert countdown.label() == "4 min 5 seg"

    def test_seconds_only(self):
        clock = FakeClock()
        countdown = Countdown(clock() + timedelta(seconds=42), clock)
        assert countdown.label() == "42 seg"

    def test_derived_from_clock_on_every_read(self):
        clock = FakeClock()
        countdown = Countdown(clock() + timedelta(minutes=5), clock)
        clock.advance(299)
        assert countdown.label() == "1 seg"
        clock.advance(10)
        assert countdown.expired
        assert countdown.remaining() == timedelta(0)
        assert countdown.label() == EXPIRED_LABEL
