"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from checkout.application.create_order import OrderCreator
from checkout.application.initiate_payment import ArtifactPolicy, PaymentInitiator
from checkout.application.manage_cart import CartHandler
from checkout.application.orchestrator import CheckoutOrchestrator, CheckoutPolicies
from checkout.application.poll_payment import PaymentStatusPoller, PollPolicy
from checkout.application.quote_shipping import ShippingResolver
from checkout.application.resolve_address import AddressResolver
from checkout.application.tokenize_card import CardTokenizer
from checkout.application.validate_coupon import CouponResolver
from checkout.domain.gateway.address_gateway import PostalCodeLookup
from checkout.domain.model.value_objects import PostalCode
from checkout.infrastructure.config import Settings, load_settings
from checkout.infrastructure.http.backend_client import BackendClient
from checkout.infrastructure.http.postal_code_client import ViaCepClient
from checkout.infrastructure.persistence.json_cart_repository import JsonCartRepository
from checkout.infrastructure.persistence.json_pending_payment_repository import (
    JsonPendingPaymentRepository,
)


def cart_repository(settings: Settings | None = None) -> JsonCartRepository:
    settings = settings or load_settings()
    return JsonCartRepository(settings.data_dir / "cart.json")


def pending_payment_repository(settings: Settings | None = None) -> JsonPendingPaymentRepository:
    settings = settings or load_settings()
    return JsonPendingPaymentRepository(settings.data_dir / "pending_payment.json")


def backend_client(settings: Settings | None = None) -> BackendClient:
    settings = settings or load_settings()
    return BackendClient(settings.api_url, settings.api_token, settings.http_timeout)


def postal_code_lookup(settings: Settings | None = None) -> ViaCepClient:
    settings = settings or load_settings()
    return ViaCepClient(settings.postal_lookup_url, settings.http_timeout)


def checkout_policies(settings: Settings) -> CheckoutPolicies:
    return CheckoutPolicies(
        instant_transfer=PollPolicy(
            interval=settings.poll_interval, timeout=settings.instant_transfer_timeout
        ),
        card_in_process=PollPolicy(interval=settings.poll_interval, timeout=settings.card_timeout),
    )


def build_orchestrator(
    user_id: int,
    settings: Settings,
    backend: BackendClient,
    lookup: PostalCodeLookup,
) -> CheckoutOrchestrator:
    artifact_policy = ArtifactPolicy(
        attempts=settings.artifact_attempts,
        delay=settings.artifact_delay,
        fallback_expiry=settings.fallback_expiry,
    )
    return CheckoutOrchestrator(
        user_id=user_id,
        carts=CartHandler(cart_repository(settings)),
        pending_payments=pending_payment_repository(settings),
        addresses=AddressResolver(backend, lookup),
        shipping=ShippingResolver(backend, PostalCode.parse(settings.origin_postal_code)),
        coupons=CouponResolver(backend),
        tokenizer=CardTokenizer(backend),
        orders=OrderCreator(backend),
        payments=PaymentInitiator(backend, artifact_policy),
        poller=PaymentStatusPoller(backend),
        policies=checkout_policies(settings),
    )


@asynccontextmanager
async def checkout_session(
    user_id: int, settings: Settings | None = None
) -> AsyncIterator[CheckoutOrchestrator]:
    """Yield a wired orchestrator; closes it and its HTTP clients on exit."""
    settings = settings or load_settings()
    lookup = postal_code_lookup(settings)
    async with backend_client(settings) as backend:
        orchestrator = build_orchestrator(user_id, settings, backend, lookup)
        try:
            yield orchestrator
        finally:
            await orchestrator.close()
            await lookup.aclose()
