"""Tests for payment creation and the instrument-specific processing steps."""

import asyncio
from datetime import timedelta

import pytest

from checkout.application.initiate_payment import ArtifactPolicy, PaymentInitiator
from checkout.domain.exceptions import ArtifactUnavailable, GatewayRejected, TokenizationFailed
from checkout.domain.model.card import CardToken
from checkout.domain.model.cart import Cart
from checkout.domain.model.order import Order
from checkout.domain.model.payment import (
    CardOutcome,
    InstantTransferArtifact,
    PaymentMethod,
    PaymentStatus,
    RejectionReason,
)
from checkout.domain.model.value_objects import Money
from tests.fakes import SEDEX, FakeClock, FakePaymentGateway, make_address


def _order() -> Order:
    cart = Cart()
    cart.add(1, "Vestido", 1, Money.of("100.00"))
    draft = Order.draft(cart, make_address(), SEDEX, PaymentMethod.INSTANT_TRANSFER)
    draft.id = 42
    return draft


def _setup(policy: ArtifactPolicy | None = None):
    clock = FakeClock()
    gateway = FakePaymentGateway(clock)
    initiator = PaymentInitiator(gateway, policy, clock=clock, sleep=clock.sleep)
    return initiator, gateway, clock


def _create(initiator, method=PaymentMethod.INSTANT_TRANSFER, installments=1):
    return asyncio.run(initiator.create_payment(_order(), method, installments))


class TestCreatePayment:

    def test_amount_is_order_total(self):
        initiator, _, _ = _setup()
        payment = _create(initiator)
        assert payment.amount == Money.of("115.00")
        assert payment.order_id == 42
        assert payment.status is PaymentStatus.PENDING

    def test_non_card_forced_to_single_installment(self):
        initiator, _, _ = _setup()
        assert _create(initiator, PaymentMethod.BANK_SLIP, installments=6).installments == 1

    def test_credit_installments(self):
        initiator, _, _ = _setup()
        assert _create(initiator, PaymentMethod.CREDIT_CARD, installments=6).installments == 6


# ── Instant transfer ─────────────────────────────────────────────────────────


class TestInstantTransferArtifact:

    def test_artifact_on_first_attempt(self):
        initiator, gateway, clock = _setup()
        payment = _create(initiator)
        artifact = asyncio.run(initiator.process_instant_transfer(payment))
        assert artifact.qr_image.startswith("data:image/png;base64,")
        assert artifact.pay_code == gateway.artifact.pay_code
        assert clock.sleeps == []

    def test_retries_until_artifact_lands(self):
        initiator, gateway, clock = _setup()
        gateway.artifact_ready_after = 2
        payment = _create(initiator)
        artifact = asyncio.run(initiator.process_instant_transfer(payment))
        assert artifact.is_ready
        assert clock.sleeps == [2.0, 2.0]
        assert gateway.calls.count("process_instant_transfer") == 1

    def test_network_error_counts_as_failed_attempt(self):
        initiator, gateway, clock = _setup()
        gateway.artifact_ready_after = 1
        gateway.get_failures = 1
        payment = _create(initiator)
        artifact = asyncio.run(initiator.process_instant_transfer(payment))
        assert artifact.is_ready
        assert len(clock.sleeps) == 2

    def test_gives_up_after_bounded_attempts(self):
        initiator, gateway, clock = _setup(ArtifactPolicy(attempts=3, delay=1.0))
        gateway.artifact_ready_after = 10
        payment = _create(initiator)
        with pytest.raises(ArtifactUnavailable, match="after 3 attempts"):
            asyncio.run(initiator.process_instant_transfer(payment))
        assert clock.sleeps == [1.0, 1.0]

    def test_keeps_data_uri_as_is(self):
        initiator, gateway, _ = _setup()
        gateway.artifact = InstantTransferArtifact(qr_image="data:image/png;base64,AAAA")
        artifact = asyncio.run(initiator.process_instant_transfer(_create(initiator)))
        assert artifact.qr_image == "data:image/png;base64,AAAA"


class TestArtifactExpiry:

    def test_gateway_expiry_kept(self):
        initiator, _, clock = _setup()
        expires = clock() + timedelta(minutes=30)
        settled = initiator.settle_artifact(
            InstantTransferArtifact(pay_code="pix", expires_at=expires), issued_at=clock()
        )
        assert settled.expires_at == expires

    def test_missing_expiry_gets_five_minute_fallback(self):
        initiator, _, clock = _setup()
        settled = initiator.settle_artifact(InstantTransferArtifact(pay_code="pix"), issued_at=clock())
        assert settled.expires_at == clock() + timedelta(minutes=5)

    def test_implausible_expiry_replaced(self):
        initiator, _, clock = _setup()
        settled = initiator.settle_artifact(
            InstantTransferArtifact(pay_code="pix", expires_at=clock() + timedelta(days=1)),
            issued_at=clock(),
        )
        assert settled.expires_at == clock() + timedelta(minutes=5)

    def test_fallback_is_configurable(self):
        initiator, _, clock = _setup(ArtifactPolicy(fallback_expiry=900))
        settled = initiator.settle_artifact(InstantTransferArtifact(pay_code="pix"), issued_at=clock())
        assert settled.expires_at == clock() + timedelta(minutes=15)


# ── Card ─────────────────────────────────────────────────────────────────────


class TestCardProcessing:

    def test_approved(self):
        initiator, gateway, _ = _setup()
        payment = _create(initiator, PaymentMethod.CREDIT_CARD, 3)
        token = CardToken("tok_1", "visa", "1111")
        outcome = asyncio.run(initiator.process_card(payment, token, 3))
        assert outcome.status is PaymentStatus.APPROVED
        assert payment.status is PaymentStatus.APPROVED
        assert token.consumed

    def test_rejected_raises_reason_coded_error(self):
        initiator, gateway, _ = _setup()
        gateway.card_outcome = CardOutcome(PaymentStatus.REJECTED, "cc_rejected_bad_filled_security_code")
        payment = _create(initiator, PaymentMethod.CREDIT_CARD)
        with pytest.raises(GatewayRejected) as exc_info:
            asyncio.run(initiator.process_card(payment, CardToken("tok_1", "visa", "1111")))
        assert exc_info.value.reason is RejectionReason.INVALID_CVC
        assert payment.status is PaymentStatus.REJECTED

    def test_in_process_returned(self):
        initiator, gateway, _ = _setup()
        gateway.card_outcome = CardOutcome(PaymentStatus.IN_PROCESS, "pending_contingency")
        payment = _create(initiator, PaymentMethod.DEBIT_CARD)
        outcome = asyncio.run(initiator.process_card(payment, CardToken("tok_1", "visa", "1111")))
        assert outcome.status is PaymentStatus.IN_PROCESS

    def test_token_cannot_be_reused(self):
        initiator, _, _ = _setup()
        payment = _create(initiator, PaymentMethod.CREDIT_CARD)
        token = CardToken("tok_1", "visa", "1111")
        asyncio.run(initiator.process_card(payment, token))
        with pytest.raises(TokenizationFailed):
            asyncio.run(initiator.process_card(payment, token))


class TestBankSlip:

    def test_issues_document(self):
        initiator, gateway, _ = _setup()
        slip = asyncio.run(initiator.process_bank_slip(_create(initiator, PaymentMethod.BANK_SLIP)))
        assert slip.document_url == gateway.bank_slip.document_url
