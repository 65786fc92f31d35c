"""Remote payment records and gateway processing."""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.card import CardDetails
from checkout.domain.model.payment import (
    BankSlip,
    CardOutcome,
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
)
from checkout.domain.model.value_objects import Money


class PaymentGateway(ABC):

    @abstractmethod
    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Money,
        installments: int,
    ) -> Payment:
        """Create a pending payment record for an order."""

    @abstractmethod
    async def get_payment(self, payment_id: int) -> Payment:
        """Return the current state of a payment (the polling endpoint)."""

    @abstractmethod
    async def process_instant_transfer(self, payment_id: int) -> InstantTransferArtifact | None:
        """Start an instant transfer; None while the QR artifact is not ready."""

    @abstractmethod
    async def process_card(
        self,
        payment_id: int,
        token: str,
        installments: int,
        payment_method_id: str,
    ) -> CardOutcome:
        """Charge a tokenized card and return the synchronous outcome."""

    @abstractmethod
    async def process_bank_slip(self, payment_id: int) -> BankSlip:
        """Issue a bank slip document for the payment."""

    @abstractmethod
    async def tokenize_card(self, card: CardDetails) -> str:
        """Exchange raw card fields for a single-use token."""
