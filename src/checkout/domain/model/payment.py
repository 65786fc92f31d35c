"""Payment — a gateway payment attempt tied to one Order.

Status transitions are monotonic: once a payment reaches a terminal
status (approved, rejected, cancelled) no later update can change it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.value_objects import Money

MAX_CREDIT_INSTALLMENTS = 12
MONTHLY_INTEREST_RATE = Decimal("0.0299")


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    INSTANT_TRANSFER = "pix"
    BANK_SLIP = "boleto"

    @property
    def is_card(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)

    @property
    def max_installments(self) -> int:
        return MAX_CREDIT_INSTALLMENTS if self is PaymentMethod.CREDIT_CARD else 1


class PaymentStatus(Enum):
    PENDING = "pending"
    IN_PROCESS = "in_process"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @staticmethod
    def from_gateway(raw: str | None) -> PaymentStatus:
        """Map a gateway/backend status string; unknown values stay pending."""
        value = (raw or "").strip().lower()
        try:
            return PaymentStatus(value)
        except ValueError:
            return _GATEWAY_ALIASES.get(value, PaymentStatus.PENDING)


_TERMINAL = frozenset(
    {PaymentStatus.APPROVED, PaymentStatus.REJECTED, PaymentStatus.CANCELLED}
)

_GATEWAY_ALIASES = {
    "authorized": PaymentStatus.IN_PROCESS,
    "in_mediation": PaymentStatus.IN_PROCESS,
    "confirmed": PaymentStatus.APPROVED,
    "received": PaymentStatus.APPROVED,
    "refunded": PaymentStatus.CANCELLED,
    "charged_back": PaymentStatus.CANCELLED,
    "expired": PaymentStatus.CANCELLED,
}


class RejectionReason(Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_NUMBER = "invalid_number"
    INVALID_EXPIRY = "invalid_expiry"
    INVALID_CVC = "invalid_cvc"
    HIGH_RISK = "high_risk"
    OTHER = "other"

    @staticmethod
    def from_gateway(code: str | None) -> RejectionReason:
        """Unknown or missing codes fall into OTHER; the set is not exhaustive."""
        value = (code or "").strip().lower()
        try:
            return RejectionReason(value)
        except ValueError:
            return _REJECTION_CODES.get(value, RejectionReason.OTHER)


_REJECTION_CODES = {
    "cc_rejected_insufficient_amount": RejectionReason.INSUFFICIENT_FUNDS,
    "cc_rejected_bad_filled_card_number": RejectionReason.INVALID_NUMBER,
    "cc_rejected_bad_filled_date": RejectionReason.INVALID_EXPIRY,
    "cc_rejected_bad_filled_security_code": RejectionReason.INVALID_CVC,
    "cc_rejected_high_risk": RejectionReason.HIGH_RISK,
    "cc_rejected_blacklist": RejectionReason.HIGH_RISK,
}


@dataclass
class Payment:
    id: int
    order_id: int
    method: PaymentMethod
    amount: Money
    installments: int = 1
    status: PaymentStatus = PaymentStatus.PENDING
    gateway_reference: str | None = None
    expires_at: datetime | None = None
    status_detail: str | None = None
    qr_image: str | None = None
    pay_code: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def artifact(self) -> InstantTransferArtifact:
        return InstantTransferArtifact(
            qr_image=self.qr_image, pay_code=self.pay_code, expires_at=self.expires_at
        )

    def advance(self, status: PaymentStatus, detail: str | None = None) -> bool:
        """Move to ``status`` unless already terminal.

        Returns True when the status actually changed.
        """
        if self.status.is_terminal or status == self.status:
            return False
        self.status = status
        if detail is not None:
            self.status_detail = detail
        return True


@dataclass(frozen=True)
class InstantTransferArtifact:
    """What the payer needs to settle an instant transfer.

    The backend may answer before the QR code exists; ``is_ready`` tells
    whether there is anything to show yet.
    """

    qr_image: str | None = None
    pay_code: str | None = None
    expires_at: datetime | None = None

    @property
    def is_ready(self) -> bool:
        return bool(self.qr_image or self.pay_code)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True)
class BankSlip:
    document_url: str
    digitable_line: str | None = None
    due_date: date | None = None


@dataclass(frozen=True)
class CardOutcome:
    status: PaymentStatus
    status_detail: str | None = None


def validate_installments(method: PaymentMethod, installments: int) -> None:
    if not 1 <= installments <= method.max_installments:
        raise ValidationError(
            f"Installments must be between 1 and {method.max_installments}",
            {"installments": f"must be between 1 and {method.max_installments}"},
        )


def installment_amount(total: Money, installments: int) -> Money:
    """Per-installment value using the Price table.

    A single installment is interest-free.
    """
    if installments <= 1:
        return total
    i = MONTHLY_INTEREST_RATE
    growth = (1 + i) ** installments
    return Money(total.amount * (i * growth) / (growth - 1)).rounded()
