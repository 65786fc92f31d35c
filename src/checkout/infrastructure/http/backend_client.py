"""httpx-backed implementation of every storefront backend port.

One ``httpx.AsyncClient`` is shared by the address, shipping, coupon,
order and payment gateways.  ``_request`` is the only place where HTTP
status codes become domain exceptions:

- transport failure or 5xx -> NetworkError
- 429 -> RateLimited(retryAfter)
- 404 -> EntityNotFoundError
- other 4xx -> the step-specific error passed by the caller
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable

import httpx
from pydantic import ValidationError as SchemaError

from checkout.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    GatewayRejected,
    NetworkError,
    RateLimited,
    ResolverUnavailable,
    TokenizationFailed,
    ValidationError,
)
from checkout.domain.gateway.address_gateway import AddressGateway
from checkout.domain.gateway.coupon_gateway import CouponGateway, CouponValidation
from checkout.domain.gateway.order_gateway import OrderGateway
from checkout.domain.gateway.payment_gateway import PaymentGateway
from checkout.domain.gateway.shipping_gateway import ShippingGateway
from checkout.domain.model.address import Address
from checkout.domain.model.card import CardDetails
from checkout.domain.model.order import Order
from checkout.domain.model.payment import (
    BankSlip,
    CardOutcome,
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
    RejectionReason,
)
from checkout.domain.model.shipping import ShippingOption, ShippingQuoteRequest
from checkout.domain.model.value_objects import Money
from checkout.infrastructure.http.schemas import (
    AddressListResponse,
    AddressResponse,
    AddressSchema,
    BankSlipResponse,
    CardChargeBody,
    CardOutcomeResponse,
    CardTokenBody,
    CouponValidationBody,
    CouponValidationResponse,
    DimensionsBody,
    ErrorBody,
    InstantTransferResponse,
    OrderBody,
    OrderItemBody,
    OrderResponse,
    PaymentBody,
    PaymentSchema,
    QuoteItemBody,
    ShippingQuoteBody,
    ShippingQuoteResponse,
    TokenResponse,
)

logger = logging.getLogger(__name__)

ClientErrorFactory = Callable[[ErrorBody, str], DomainException]

DEFAULT_RETRY_AFTER = 60.0


def _validation_error(body: ErrorBody, fallback: str) -> DomainException:
    return ValidationError(body.text or fallback)


class BackendClient(AddressGateway, ShippingGateway, CouponGateway, OrderGateway, PaymentGateway):

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- AddressGateway -------------------------------------------------------

    async def list_addresses(self, user_id: int) -> list[Address]:
        data = await self._request("GET", "addresses")
        return [a.to_domain() for a in self._parse(AddressListResponse, data).addresses]

    async def create_address(self, address: Address) -> Address:
        body = AddressSchema.from_domain(address).to_wire()
        data = await self._request("POST", "addresses", json=body)
        return self._parse(AddressResponse, data).address.to_domain()

    # --- ShippingGateway ------------------------------------------------------

    async def quote(self, request: ShippingQuoteRequest) -> list[ShippingOption]:
        body = ShippingQuoteBody(
            origin_postal_code=request.origin_postal_code.digits,
            destination_postal_code=request.destination_postal_code.digits,
            weight=request.weight_grams,
            dimensions=DimensionsBody(
                height=request.dimensions.height,
                width=request.dimensions.width,
                length=request.dimensions.length,
            ),
            value=float(request.declared_value.amount),
            items=[
                QuoteItemBody(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=float(item.unit_price.amount),
                )
                for item in request.items
            ],
        )
        data = await self._request(
            "POST",
            "shipping/quote",
            json=body.to_wire(),
            on_client_error=lambda err, msg: ResolverUnavailable(err.text or msg),
        )
        return [o.to_domain() for o in self._parse(ShippingQuoteResponse, data).options]

    # --- CouponGateway --------------------------------------------------------

    async def validate(self, code: str, subtotal: Money) -> CouponValidation:
        body = CouponValidationBody(code=code, subtotal=float(subtotal.amount))
        # A refused coupon comes back as a 4xx carrying the same verdict body.
        data = await self._request(
            "POST", "coupons/validate", json=body.to_wire(), client_error_body=True
        )
        verdict = self._parse(CouponValidationResponse, data)
        discount = None
        if verdict.valid and verdict.discount_amount is not None:
            discount = Money.of(verdict.discount_amount)
        return CouponValidation(
            valid=verdict.valid,
            discount_amount=discount,
            error=verdict.error or verdict.message,
        )

    # --- OrderGateway ---------------------------------------------------------

    async def create_order(self, order: Order) -> Order:
        body = OrderBody(
            items=[
                OrderItemBody(
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    name=item.name,
                    quantity=item.quantity.value,
                    price=float(item.unit_price.amount),
                    size=item.size or None,
                    color=item.color or None,
                )
                for item in order.items
            ],
            shipping_address=order.shipping_address.as_line(),
            shipping_address_id=order.shipping_address.id,
            shipping_cost=float(order.shipping_cost.amount),
            shipping_method=order.shipping_method,
            payment_method=order.payment_method.value,
            coupon_code=order.coupon_code,
        )
        data = await self._request("POST", "orders", json=body.to_wire())
        created = self._parse(OrderResponse, data)
        return replace(
            order,
            id=created.id,
            total=Money.of(created.total),
            created_at=created.created_at or order.created_at,
        )

    # --- PaymentGateway -------------------------------------------------------

    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Money,
        installments: int,
    ) -> Payment:
        body = PaymentBody(
            order_id=order_id,
            payment_method=method.value,
            installments=installments,
            amount=float(amount.amount),
        )
        data = await self._request("POST", "payments", json=body.to_wire())
        return self._parse(PaymentSchema, data).to_domain()

    async def get_payment(self, payment_id: int) -> Payment:
        data = await self._request("GET", f"payments/{payment_id}")
        return self._parse(PaymentSchema, data).to_domain()

    async def process_instant_transfer(self, payment_id: int) -> InstantTransferArtifact | None:
        data = await self._request("POST", f"payments/{payment_id}/process-instant-transfer")
        artifact = self._parse(InstantTransferResponse, data).to_domain()
        return artifact if artifact.is_ready else None

    async def process_card(
        self,
        payment_id: int,
        token: str,
        installments: int,
        payment_method_id: str,
    ) -> CardOutcome:
        body = CardChargeBody(
            token=token, installments=installments, payment_method_id=payment_method_id
        )

        def rejected(err: ErrorBody, msg: str) -> DomainException:
            detail = err.status_detail or err.error
            return GatewayRejected(RejectionReason.from_gateway(detail), detail)

        data = await self._request(
            "POST",
            f"payments/{payment_id}/process-card",
            json=body.to_wire(),
            on_client_error=rejected,
        )
        return self._parse(CardOutcomeResponse, data).to_domain()

    async def process_bank_slip(self, payment_id: int) -> BankSlip:
        data = await self._request("POST", f"payments/{payment_id}/process-bank-slip")
        return self._parse(BankSlipResponse, data).to_domain()

    async def tokenize_card(self, card: CardDetails) -> str:
        body = CardTokenBody(
            card_number=card.digits,
            expiration_month=card.expiry_month,
            expiration_year=card.full_expiry_year,
            security_code=card.cvc.strip(),
            cardholder_name=card.holder_name.strip(),
            identification_number="".join(ch for ch in card.holder_tax_id if ch.isdigit()),
        )
        data = await self._request(
            "POST",
            "payments/tokenize-card",
            json=body.to_wire(),
            on_client_error=lambda err, msg: TokenizationFailed(err.text or msg),
        )
        return self._parse(TokenResponse, data).id

    # --- HTTP helpers ---------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        on_client_error: ClientErrorFactory = _validation_error,
        client_error_body: bool = False,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        # Bodies may carry personal or card data; only the status is logged.
        logger.debug("%s %s -> %s", method, path, response.status_code)

        status = response.status_code
        if status < 400:
            return self._json(response)

        error = self._error_body(response)
        fallback = f"{method} {path} failed with status {status}"
        if status == 429:
            retry_after = error.retry_after or self._retry_after_header(response)
            raise RateLimited(retry_after, error.text)
        if status >= 500:
            raise NetworkError(error.text or fallback)
        if status == 404 and not client_error_body:
            raise EntityNotFoundError(error.text or fallback)
        if client_error_body:
            return self._json(response)
        raise on_client_error(error, fallback)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"Malformed response from {response.request.url}") from exc

    @staticmethod
    def _error_body(response: httpx.Response) -> ErrorBody:
        try:
            return ErrorBody.model_validate(response.json())
        except (ValueError, SchemaError):
            return ErrorBody()

    @staticmethod
    def _retry_after_header(response: httpx.Response) -> float:
        try:
            return float(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
        except ValueError:
            return DEFAULT_RETRY_AFTER

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except SchemaError as exc:
            raise NetworkError(f"Unexpected response shape for {model.__name__}: {exc}") from exc
