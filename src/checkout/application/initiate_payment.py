"""Application service: Payment Initiator.

Creates the payment record for an order and runs the instrument-specific
processing step:

- card: synchronous outcome, rejection raised as GatewayRejected
- instant transfer: fetches the QR artifact, retrying while it lags
  behind the payment record
- bank slip: issues the document, nothing to poll
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from checkout.application.clock import Clock, Sleep, real_sleep, utc_now
from checkout.domain.exceptions import ArtifactUnavailable, GatewayRejected, NetworkError
from checkout.domain.gateway.payment_gateway import PaymentGateway
from checkout.domain.model.card import CardToken
from checkout.domain.model.order import Order
from checkout.domain.model.payment import (
    BankSlip,
    CardOutcome,
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
    PaymentStatus,
    RejectionReason,
    validate_installments,
)

logger = logging.getLogger(__name__)

_DATA_URI_PREFIX = "data:image/png;base64,"


@dataclass(frozen=True)
class ArtifactPolicy:
    """How hard to try for the QR artifact and how to trust its expiry.

    ``fallback_expiry`` applies when the gateway sends no expiry, or one
    further ahead than ``max_expiry_horizon``.
    """

    attempts: int = 5
    delay: float = 2.0
    fallback_expiry: float = 300.0
    max_expiry_horizon: float = 3600.0


class PaymentInitiator:

    def __init__(
        self,
        gateway: PaymentGateway,
        policy: ArtifactPolicy | None = None,
        clock: Clock = utc_now,
        sleep: Sleep = real_sleep,
    ) -> None:
        self._gateway = gateway
        self._policy = policy or ArtifactPolicy()
        self._clock = clock
        self._sleep = sleep

    async def create_payment(
        self, order: Order, method: PaymentMethod, installments: int = 1
    ) -> Payment:
        """Create a pending payment for the full order total."""
        if not method.is_card:
            installments = 1
        validate_installments(method, installments)
        payment = await self._gateway.create_payment(
            order_id=order.id,  # type: ignore[arg-type]
            method=method,
            amount=order.total,
            installments=installments,
        )
        logger.info(
            "Payment #%s created for order #%s (%s, %s)",
            payment.id, order.id, method.value, payment.amount,
        )
        return payment

    async def refresh(self, payment_id: int) -> Payment:
        return await self._gateway.get_payment(payment_id)

    # --- Instant transfer -----------------------------------------------------

    async def process_instant_transfer(
        self, payment: Payment, start: bool = True
    ) -> InstantTransferArtifact:
        """Start the transfer and return a displayable artifact.

        The first attempt asks the gateway to process the payment; later
        attempts only re-read the payment record, where the artifact
        lands once the gateway produced it.  With ``start=False`` (resuming
        after a reload) every attempt only re-reads the record.
        """
        attempts = self._policy.attempts
        for attempt in range(1, attempts + 1):
            try:
                if attempt == 1 and start:
                    artifact = await self._gateway.process_instant_transfer(payment.id)
                else:
                    artifact = (await self._gateway.get_payment(payment.id)).artifact
            except NetworkError as exc:
                logger.warning(
                    "Artifact fetch %d/%d for payment #%s failed: %s",
                    attempt, attempts, payment.id, exc,
                )
                artifact = None

            if artifact is not None and artifact.is_ready:
                return self.settle_artifact(artifact, issued_at=self._clock())

            if attempt < attempts:
                await self._sleep(self._policy.delay)

        raise ArtifactUnavailable(
            f"QR code for payment #{payment.id} unavailable after {attempts} attempts"
        )

    def settle_artifact(
        self, artifact: InstantTransferArtifact, issued_at: datetime
    ) -> InstantTransferArtifact:
        """Normalize the image and pin a trustworthy expiry."""
        qr_image = artifact.qr_image
        if qr_image and not qr_image.startswith("data:"):
            qr_image = _DATA_URI_PREFIX + qr_image
        return replace(
            artifact,
            qr_image=qr_image,
            expires_at=self._settle_expiry(artifact.expires_at, issued_at),
        )

    def _settle_expiry(self, expires_at: datetime | None, issued_at: datetime) -> datetime:
        fallback = issued_at + timedelta(seconds=self._policy.fallback_expiry)
        if expires_at is None:
            logger.info("No expiry from gateway, using fallback %s", fallback.isoformat())
            return fallback
        horizon = self._clock() + timedelta(seconds=self._policy.max_expiry_horizon)
        if expires_at > horizon:
            logger.warning(
                "Gateway expiry %s is implausibly far ahead, using fallback %s",
                expires_at.isoformat(), fallback.isoformat(),
            )
            return fallback
        return expires_at

    # --- Card -----------------------------------------------------------------

    async def process_card(
        self, payment: Payment, token: CardToken, installments: int = 1
    ) -> CardOutcome:
        """Charge the card; raises GatewayRejected when declined.

        The token is consumed even if the call fails, so a retry needs a
        fresh tokenization.
        """
        token_value = token.consume()
        outcome = await self._gateway.process_card(
            payment_id=payment.id,
            token=token_value,
            installments=installments,
            payment_method_id=token.brand,
        )
        payment.advance(outcome.status, outcome.status_detail)
        logger.info(
            "Card payment #%s -> %s (%s)",
            payment.id, outcome.status.value, outcome.status_detail,
        )
        if outcome.status in (PaymentStatus.REJECTED, PaymentStatus.CANCELLED):
            raise GatewayRejected(
                RejectionReason.from_gateway(outcome.status_detail), outcome.status_detail
            )
        return outcome

    # --- Bank slip ------------------------------------------------------------

    async def process_bank_slip(self, payment: Payment) -> BankSlip:
        slip = await self._gateway.process_bank_slip(payment.id)
        logger.info("Bank slip issued for payment #%s", payment.id)
        return slip
