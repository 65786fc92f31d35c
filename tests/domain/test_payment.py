"""Unit tests for the Payment entity and its status mapping."""

from datetime import timedelta
from decimal import Decimal

import pytest

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.payment import (
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
    PaymentStatus,
    RejectionReason,
    installment_amount,
    validate_installments,
)
from checkout.domain.model.value_objects import Money
from tests.fakes import START


def _payment(**overrides) -> Payment:
    fields = dict(id=1, order_id=7, method=PaymentMethod.INSTANT_TRANSFER, amount=Money.of("105.00"))
    fields.update(overrides)
    return Payment(**fields)


class TestPaymentStatus:

    def test_advance_from_pending(self):
        payment = _payment()
        assert payment.advance(PaymentStatus.IN_PROCESS)
        assert payment.advance(PaymentStatus.APPROVED, "accredited")
        assert payment.status_detail == "accredited"

    @pytest.mark.parametrize(
        "terminal", [PaymentStatus.APPROVED, PaymentStatus.REJECTED, PaymentStatus.CANCELLED]
    )
    def test_terminal_status_is_final(self, terminal):
        payment = _payment(status=terminal)
        assert not payment.advance(PaymentStatus.PENDING)
        assert not payment.advance(PaymentStatus.APPROVED)
        assert payment.status is terminal

    @pytest.mark.parametrize(
        "raw, status",
        [
            ("approved", PaymentStatus.APPROVED),
            ("APPROVED", PaymentStatus.APPROVED),
            ("in_mediation", PaymentStatus.IN_PROCESS),
            ("refunded", PaymentStatus.CANCELLED),
            ("received", PaymentStatus.APPROVED),
            ("mystery", PaymentStatus.PENDING),
            (None, PaymentStatus.PENDING),
        ],
    )
    def test_from_gateway(self, raw, status):
        assert PaymentStatus.from_gateway(raw) is status

    def test_artifact_expiry(self):
        artifact = _payment(expires_at=START + timedelta(minutes=5)).artifact
        assert not artifact.is_expired(START)
        assert artifact.is_expired(START + timedelta(minutes=5))
        assert not InstantTransferArtifact().is_expired(START)


class TestRejectionReason:

    @pytest.mark.parametrize(
        "code, reason",
        [
            ("cc_rejected_insufficient_amount", RejectionReason.INSUFFICIENT_FUNDS),
            ("cc_rejected_bad_filled_card_number", RejectionReason.INVALID_NUMBER),
            ("cc_rejected_bad_filled_date", RejectionReason.INVALID_EXPIRY),
            ("cc_rejected_bad_filled_security_code", RejectionReason.INVALID_CVC),
            ("cc_rejected_high_risk", RejectionReason.HIGH_RISK),
            ("cc_rejected_call_for_authorize", RejectionReason.OTHER),
            (None, RejectionReason.OTHER),
        ],
    )
    def test_from_gateway(self, code, reason):
        assert RejectionReason.from_gateway(code) is reason


class TestInstallments:

    def test_credit_allows_up_to_twelve(self):
        validate_installments(PaymentMethod.CREDIT_CARD, 12)
        with pytest.raises(ValidationError):
            validate_installments(PaymentMethod.CREDIT_CARD, 13)

    def test_credit_requires_at_least_one(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_installments(PaymentMethod.CREDIT_CARD, 0)
        assert "installments" in exc_info.value.field_errors

    def test_debit_is_single_installment(self):
        with pytest.raises(ValidationError):
            validate_installments(PaymentMethod.DEBIT_CARD, 2)

    def test_single_installment_has_no_interest(self):
        assert installment_amount(Money.of("100.00"), 1) == Money.of("100.00")

    def test_price_table_interest(self):
        value = installment_amount(Money.of("1000.00"), 12)
        assert Decimal("100.30") < value.amount < Decimal("100.50")
        assert value.amount == value.amount.quantize(Decimal("0.01"))
