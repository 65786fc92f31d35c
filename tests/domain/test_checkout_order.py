"""Unit tests for order drafting and checkout totals."""

import pytest

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.cart import Cart
from checkout.domain.model.coupon import AppliedCoupon
from checkout.domain.model.order import MAX_LINE_ITEMS, Order
from checkout.domain.model.payment import PaymentMethod
from checkout.domain.model.shipping import STORE_PICKUP, with_store_pickup
from checkout.domain.model.value_objects import Money
from checkout.domain.service.totals import compute_totals
from tests.fakes import PAC, SEDEX, make_address


def _cart(price: str = "100.00") -> Cart:
    cart = Cart()
    cart.add(1, "Vestido", 1, Money.of(price), size="P", color="preto", variant_id=11)
    return cart


# ── Order.draft ──────────────────────────────────────────────────────────────


class TestOrderDraft:

    def test_snapshots_cart_lines(self):
        cart = _cart()
        order = Order.draft(cart, make_address(), SEDEX, PaymentMethod.INSTANT_TRANSFER)
        cart.update_quantity(1, 5, "P", "preto")
        assert order.items[0].quantity.value == 1
        assert order.items[0].variant_id == 11
        assert order.id is None

    def test_total_includes_coupon_and_shipping(self):
        cart = _cart()
        coupon = AppliedCoupon.for_subtotal("SAVE10", cart.subtotal, Money.of("10.00"))
        order = Order.draft(cart, make_address(), SEDEX, PaymentMethod.CREDIT_CARD, coupon)
        assert order.total == Money.of("105.00")
        assert order.coupon_code == "SAVE10"
        assert order.shipping_method == "sedex"
        assert order.subtotal == Money.of("100.00")

    def test_empty_cart_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            Order.draft(Cart(), make_address(), SEDEX, PaymentMethod.BANK_SLIP)

    def test_too_many_lines_rejected(self):
        cart = Cart()
        for product_id in range(MAX_LINE_ITEMS + 1):
            cart.add(product_id, "Item", 1, Money.of("1.00"))
        with pytest.raises(ValidationError, match="Maximum 50"):
            Order.draft(cart, make_address(), SEDEX, PaymentMethod.BANK_SLIP)

    def test_stale_coupon_rejected(self):
        coupon = AppliedCoupon.for_subtotal("SAVE10", Money.of("80.00"), Money.of("10.00"))
        with pytest.raises(ValidationError) as exc_info:
            Order.draft(_cart(), make_address(), SEDEX, PaymentMethod.BANK_SLIP, coupon)
        assert "coupon_code" in exc_info.value.field_errors


# ── Totals ───────────────────────────────────────────────────────────────────


class TestTotals:

    def test_coupon_then_shipping(self):
        coupon = AppliedCoupon.for_subtotal("SAVE10", Money.of("100.00"), Money.of("10.00"))
        totals = compute_totals(Money.of("100.00"), coupon, SEDEX)
        assert totals.merchandise == Money.of("90.00")
        assert totals.total == Money.of("105.00")

    def test_stale_coupon_ignored(self):
        coupon = AppliedCoupon.for_subtotal("SAVE10", Money.of("100.00"), Money.of("10.00"))
        totals = compute_totals(Money.of("150.00"), coupon, PAC)
        assert totals.discount == Money.zero()
        assert totals.total == Money.of("159.50")

    def test_no_shipping_yet(self):
        assert compute_totals(Money.of("20.00")).total == Money.of("20.00")


# ── Shipping options ─────────────────────────────────────────────────────────


class TestStorePickup:

    def test_added_once(self):
        options = with_store_pickup([SEDEX])
        assert options == [SEDEX, STORE_PICKUP]
        assert with_store_pickup(options) == options

    def test_pickup_is_free(self):
        assert STORE_PICKUP.price == Money.zero()
        assert STORE_PICKUP.is_store_pickup
