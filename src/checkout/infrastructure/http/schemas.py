"""Wire models for the storefront backend API.

The backend speaks camelCase JSON and is not fully consistent about
field names across endpoints (``zipCode`` vs ``postalCode``,
``qrCodeBase64`` vs ``qrImage``), so incoming models accept every
spelling seen in the wild.  Each model converts itself into the domain
type with ``to_domain()``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout.domain.model.address import Address
from checkout.domain.model.payment import (
    BankSlip,
    CardOutcome,
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from checkout.domain.model.shipping import ShippingOption
from checkout.domain.model.value_objects import Money, PostalCode


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _aware(value: datetime | None) -> datetime | None:
    """Naive timestamps from the backend are UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# --- Responses ----------------------------------------------------------------


class ErrorBody(WireModel):
    error: Optional[str] = None
    message: Optional[str] = None
    retry_after: Optional[float] = None
    status_detail: Optional[str] = None

    @property
    def text(self) -> str | None:
        return self.message or self.error


class AddressSchema(WireModel):
    id: Optional[int] = None
    street: str
    number: str
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str
    postal_code: str = Field(validation_alias=AliasChoices("postalCode", "zipCode", "postal_code"))
    recipient_name: str = Field(
        validation_alias=AliasChoices("recipientName", "name", "recipient_name")
    )
    phone: str
    label: Optional[str] = None
    is_default: bool = Field(
        default=False, validation_alias=AliasChoices("isDefault", "is_default")
    )

    def to_domain(self) -> Address:
        return Address(
            id=self.id,
            street=self.street,
            number=self.number,
            complement=self.complement or "",
            neighborhood=self.neighborhood,
            city=self.city,
            state=self.state.upper(),
            postal_code=PostalCode.parse(self.postal_code),
            recipient_name=self.recipient_name,
            phone=self.phone,
            label=self.label or "",
            is_default=self.is_default,
        )

    @staticmethod
    def from_domain(address: Address) -> AddressSchema:
        return AddressSchema(
            id=address.id,
            street=address.street,
            number=address.number,
            complement=address.complement or None,
            neighborhood=address.neighborhood,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code.digits,
            recipient_name=address.recipient_name,
            phone=address.phone,
            label=address.label or None,
            is_default=address.is_default,
        )


class AddressListResponse(WireModel):
    addresses: list[AddressSchema] = Field(default_factory=list)


class AddressResponse(WireModel):
    address: AddressSchema


class ShippingOptionSchema(WireModel):
    service_id: Union[str, int] = Field(validation_alias=AliasChoices("serviceId", "service", "id"))
    display_name: str = Field(validation_alias=AliasChoices("displayName", "name"))
    price: Decimal
    estimated_days: int = Field(
        default=0, validation_alias=AliasChoices("estimatedDays", "deliveryTime", "days")
    )
    carrier: str = Field(default="", validation_alias=AliasChoices("carrier", "company"))

    def to_domain(self) -> ShippingOption:
        return ShippingOption(
            service_id=str(self.service_id),
            display_name=self.display_name,
            price=Money.of(self.price).rounded(),
            estimated_days=self.estimated_days,
            carrier=self.carrier,
        )


class ShippingQuoteResponse(WireModel):
    options: list[ShippingOptionSchema] = Field(default_factory=list)


class CouponValidationResponse(WireModel):
    valid: bool = False
    discount_amount: Optional[Decimal] = None
    final_total: Optional[Decimal] = None
    error: Optional[str] = None
    message: Optional[str] = None


class OrderResponse(WireModel):
    id: int
    total: Decimal
    created_at: Optional[datetime] = None


class PaymentSchema(WireModel):
    id: int
    order_id: int
    method: str = Field(validation_alias=AliasChoices("paymentMethod", "method"))
    amount: Decimal
    installments: int = 1
    status: str = "pending"
    status_detail: Optional[str] = None
    gateway_reference: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("gatewayReference", "gatewayId", "externalId")
    )
    qr_image: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("qrImage", "qrCodeBase64", "pixQrCode")
    )
    pay_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("payCode", "pixCode", "pixCopyPaste")
    )
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expiresAt", "pixExpiresAt")
    )

    def to_domain(self) -> Payment:
        return Payment(
            id=self.id,
            order_id=self.order_id,
            method=PaymentMethod(self.method),
            amount=Money.of(self.amount),
            installments=self.installments,
            status=PaymentStatus.from_gateway(self.status),
            status_detail=self.status_detail,
            gateway_reference=self.gateway_reference,
            qr_image=self.qr_image,
            pay_code=self.pay_code,
            expires_at=_aware(self.expires_at),
        )


class InstantTransferResponse(WireModel):
    qr_image: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("qrImage", "qrCodeBase64", "pixQrCode")
    )
    pay_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("payCode", "pixCode", "pixCopyPaste")
    )
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expiresAt", "pixExpiresAt")
    )

    def to_domain(self) -> InstantTransferArtifact:
        return InstantTransferArtifact(
            qr_image=self.qr_image, pay_code=self.pay_code, expires_at=_aware(self.expires_at)
        )


class CardOutcomeResponse(WireModel):
    status: str
    status_detail: Optional[str] = None

    def to_domain(self) -> CardOutcome:
        return CardOutcome(
            status=PaymentStatus.from_gateway(self.status), status_detail=self.status_detail
        )


class BankSlipResponse(WireModel):
    document_url: str = Field(
        validation_alias=AliasChoices("documentUrl", "boletoUrl", "bankSlipUrl")
    )
    digitable_line: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("digitableLine", "barcode")
    )
    due_date: Optional[date] = None

    def to_domain(self) -> BankSlip:
        return BankSlip(
            document_url=self.document_url,
            digitable_line=self.digitable_line,
            due_date=self.due_date,
        )


class TokenResponse(WireModel):
    id: str


# --- Requests -----------------------------------------------------------------


class DimensionsBody(WireModel):
    height: int
    width: int
    length: int


class QuoteItemBody(WireModel):
    product_id: int
    quantity: int
    price: float


class ShippingQuoteBody(WireModel):
    origin_postal_code: str
    destination_postal_code: str
    weight: int
    dimensions: DimensionsBody
    value: float
    items: list[QuoteItemBody] = Field(default_factory=list)


class CouponValidationBody(WireModel):
    code: str
    subtotal: float


class OrderItemBody(WireModel):
    product_id: int
    variant_id: Optional[int] = None
    name: str
    quantity: int
    price: float
    size: Optional[str] = None
    color: Optional[str] = None


class OrderBody(WireModel):
    items: list[OrderItemBody]
    shipping_address: str
    shipping_address_id: Optional[int] = None
    shipping_cost: float
    shipping_method: str
    payment_method: str
    coupon_code: Optional[str] = None


class PaymentBody(WireModel):
    order_id: int
    gateway: str = "mercadopago"
    payment_method: str
    installments: int = 1
    amount: float


class CardChargeBody(WireModel):
    token: str
    installments: int
    payment_method_id: str


class CardTokenBody(WireModel):
    card_number: str = Field(repr=False)
    expiration_month: int
    expiration_year: int
    security_code: str = Field(repr=False)
    cardholder_name: str
    identification_number: str = Field(repr=False)
    identification_type: str = "CPF"
