"""Address — a delivery destination owned by the user account."""

from __future__ import annotations

from dataclasses import dataclass, replace

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.value_objects import PostalCode

REQUIRED_FIELDS = (
    "street",
    "number",
    "neighborhood",
    "city",
    "state",
    "postal_code",
    "recipient_name",
    "phone",
)


@dataclass(frozen=True)
class Address:
    street: str
    number: str
    neighborhood: str
    city: str
    state: str
    postal_code: PostalCode
    recipient_name: str
    phone: str
    complement: str = ""
    label: str = ""
    is_default: bool = False
    id: int | None = None

    @staticmethod
    def create(data: dict[str, str], is_default: bool = False) -> Address:
        """Build a new address from raw form fields.

        Every missing or invalid field is reported in a single
        ValidationError so the form can flag them together.
        """
        errors: dict[str, str] = {}
        for name in REQUIRED_FIELDS:
            if not str(data.get(name) or "").strip():
                errors[name] = "is required"
        if "postal_code" not in errors and not PostalCode.is_valid(data["postal_code"]):
            errors["postal_code"] = "must contain exactly 8 digits"
        if errors:
            raise ValidationError.from_fields(errors)

        return Address(
            street=data["street"].strip(),
            number=data["number"].strip(),
            neighborhood=data["neighborhood"].strip(),
            city=data["city"].strip(),
            state=data["state"].strip().upper(),
            postal_code=PostalCode.parse(data["postal_code"]),
            recipient_name=data["recipient_name"].strip(),
            phone=data["phone"].strip(),
            complement=(data.get("complement") or "").strip(),
            label=(data.get("label") or "").strip(),
            is_default=is_default,
        )

    def as_line(self) -> str:
        """One-line rendering stored on the order snapshot."""
        street = f"{self.street}, {self.number}"
        if self.complement:
            street += f" - {self.complement}"
        return (
            f"{street}, {self.neighborhood}, {self.city}, {self.state} "
            f"- CEP: {self.postal_code.digits}"
        )

    def snapshot(self) -> Address:
        """A detached copy, safe to embed in an order."""
        return replace(self)


@dataclass(frozen=True)
class PostalCodeInfo:
    """Street-level data resolved from a postal code, used to pre-fill forms."""

    postal_code: PostalCode
    street: str
    neighborhood: str
    city: str
    state: str


def select_initial(addresses: list[Address]) -> Address | None:
    """The default address, else the first one, else None."""
    for address in addresses:
        if address.is_default:
            return address
    return addresses[0] if addresses else None


def ensure_single_default(addresses: list[Address]) -> list[Address]:
    """Keep only the first default flag if the backend returned several."""
    seen_default = False
    result: list[Address] = []
    for address in addresses:
        if address.is_default and seen_default:
            address = replace(address, is_default=False)
        seen_default = seen_default or address.is_default
        result.append(address)
    return result
