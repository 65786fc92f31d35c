"""Tests for the attempt lock guarding order creation."""

import asyncio

import pytest

from checkout.application.create_order import AttemptLock, OrderCreator
from checkout.domain.exceptions import CheckoutInProgress, NetworkError
from checkout.domain.model.cart import Cart
from checkout.domain.model.order import Order
from checkout.domain.model.payment import PaymentMethod
from checkout.domain.model.value_objects import Money
from tests.fakes import SEDEX, FakeOrderGateway, make_address


def _draft() -> Order:
    cart = Cart()
    cart.add(1, "Vestido", 1, Money.of("100.00"))
    return Order.draft(cart, make_address(), SEDEX, PaymentMethod.INSTANT_TRANSFER)


class TestAttemptLock:

    def test_acquire_while_held_rejected(self):
        lock = AttemptLock()
        lock.acquire()
        with pytest.raises(CheckoutInProgress, match="in progress"):
            lock.acquire()

    def test_failed_attempt_frees_lock(self):
        lock = AttemptLock()
        lock.acquire()
        lock.release(succeeded=False)
        lock.acquire()
        assert lock.held

    def test_used_lock_refuses_new_attempt(self):
        lock = AttemptLock()
        lock.acquire()
        lock.release(succeeded=True)
        assert lock.used
        with pytest.raises(CheckoutInProgress, match="already created"):
            lock.acquire()


class TestOrderCreator:

    def test_creates_order_once(self):
        gateway = FakeOrderGateway()
        creator = OrderCreator(gateway)
        order = asyncio.run(creator.create(_draft()))
        assert order.id == 1
        assert order.total == Money.of("115.00")
        with pytest.raises(CheckoutInProgress):
            asyncio.run(creator.create(_draft()))
        assert gateway.calls == 1

    def test_concurrent_submits_issue_one_request(self):
        gateway = FakeOrderGateway()
        creator = OrderCreator(gateway)

        async def scenario():
            gateway.gate = asyncio.Event()
            first = asyncio.ensure_future(creator.create(_draft()))
            await asyncio.sleep(0)
            with pytest.raises(CheckoutInProgress):
                await creator.create(_draft())
            gateway.gate.set()
            return await first

        order = asyncio.run(scenario())
        assert order.id == 1
        assert gateway.calls == 1

    def test_failure_allows_explicit_retry(self):
        gateway = FakeOrderGateway()
        gateway.error = NetworkError("timeout")
        creator = OrderCreator(gateway)
        with pytest.raises(NetworkError):
            asyncio.run(creator.create(_draft()))
        gateway.error = None
        assert asyncio.run(creator.create(_draft())).id == 1
        assert gateway.calls == 2
