"""Raw card fields and the single-use token that replaces them.

Raw card data lives only as long as the form that collected it.  Its
``repr`` never shows the number or CVC so it cannot leak into logs or
tracebacks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from checkout.domain.exceptions import TokenizationFailed, ValidationError
from checkout.domain.model.value_objects import digits_only

# Prefix table used to pick the gateway's payment method id.
_BRAND_PREFIXES = (
    ("elo", ("4011", "4312", "4389", "4514", "4576", "5041", "5066", "5067", "509", "6277", "6362", "6363", "650", "6516", "6550")),
    ("hipercard", ("606282", "3841")),
    ("amex", ("34", "37")),
    ("visa", ("4",)),
    ("master", ("51", "52", "53", "54", "55", "22", "23", "24", "25", "26", "27")),
)


@dataclass(frozen=True)
class CardDetails:
    number: str = field(repr=False)
    expiry_month: int
    expiry_year: int
    cvc: str = field(repr=False)
    holder_name: str
    holder_tax_id: str = field(repr=False)

    def __repr__(self) -> str:
        return (
            f"CardDetails(number=****{self.last_digits}, "
            f"expiry={self.expiry_month:02d}/{self.expiry_year}, "
            f"holder_name={self.holder_name!r})"
        )

    @property
    def digits(self) -> str:
        return digits_only(self.number)

    @property
    def last_digits(self) -> str:
        return self.digits[-4:]

    @property
    def full_expiry_year(self) -> int:
        return self.expiry_year + 2000 if self.expiry_year < 100 else self.expiry_year

    @property
    def brand(self) -> str:
        digits = self.digits
        for brand, prefixes in _BRAND_PREFIXES:
            if digits.startswith(prefixes):
                return brand
        return "unknown"

    def validate(self, today: date) -> None:
        """Fail fast with every field-level error before any network call."""
        errors: dict[str, str] = {}

        stripped = self.number.replace(" ", "").replace("-", "")
        if not (stripped.isdigit() and 13 <= len(stripped) <= 19):
            errors["card_number"] = "must contain 13 to 19 digits"

        if not 1 <= self.expiry_month <= 12:
            errors["expiry"] = "month must be between 1 and 12"
        elif (self.full_expiry_year, self.expiry_month) < (today.year, today.month):
            errors["expiry"] = "card is expired"

        cvc = self.cvc.strip()
        if not (cvc.isdigit() and 3 <= len(cvc) <= 4):
            errors["cvc"] = "must contain 3 or 4 digits"

        if len(self.holder_name.strip()) < 3:
            errors["holder_name"] = "must have at least 3 characters"

        if len(digits_only(self.holder_tax_id)) != 11:
            errors["holder_tax_id"] = "must contain exactly 11 digits"

        if errors:
            raise ValidationError.from_fields(errors)


@dataclass
class CardToken:
    """Non-reusable reference to a tokenized card.

    Bound to one payment attempt: ``consume()`` succeeds exactly once.
    """

    value: str = field(repr=False)
    brand: str
    last_digits: str
    consumed: bool = False

    def consume(self) -> str:
        if self.consumed:
            raise TokenizationFailed("Card token already used; tokenize the card again")
        self.consumed = True
        return self.value
