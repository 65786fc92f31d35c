"""Money, quantities and postal codes.

All three are frozen and check themselves on construction: if an
instance exists, it is valid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import total_ordering

from checkout.domain.exceptions import ValidationError

CENTS = Decimal("0.01")


@total_ordering
@dataclass(frozen=True)
class Money:
    """A non-negative amount in reais, kept as Decimal.

    The store sells in a single currency, so there is no currency field
    and any two amounts can be combined.
    """

    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            raise ValidationError(f"Money needs a finite Decimal amount, got {self.amount!r}")
        if self.amount.is_signed() and self.amount != 0:
            raise ValidationError(f"Negative amounts are not allowed: {self.amount}")

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Build from form or wire input; floats pass through ``str`` first."""
        try:
            return Money(Decimal(str(amount).strip()))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero() -> Money:
        return Money(Decimal("0.00"))

    def rounded(self) -> Money:
        """Half-up to whole cents, the way amounts are charged."""
        return Money(self.amount.quantize(CENTS, rounding=ROUND_HALF_UP))

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + other.amount)

    def __sub__(self, other: Money) -> Money:
        if other.amount > self.amount:
            raise ValidationError(f"Cannot subtract {other} from {self}")
        return Money(self.amount - other.amount)

    def __mul__(self, times: int) -> Money:
        if isinstance(times, bool) or not isinstance(times, int):
            raise TypeError(f"Money can only be multiplied by an int, not {type(times).__name__}")
        return Money(self.amount * times)

    def __lt__(self, other: Money) -> bool:
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"R$ {self.amount:.2f}"


@dataclass(frozen=True)
class Quantity:
    """Units of one cart line; at least one."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(f"Quantity must be a whole number, got {self.value!r}")
        if self.value < 1:
            raise ValidationError(f"Quantity must be positive, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)


_NON_DIGITS = re.compile(r"\D")


def digits_only(raw: str | None) -> str:
    return _NON_DIGITS.sub("", raw or "")


@dataclass(frozen=True)
class PostalCode:
    """A Brazilian postal code (CEP), stored as exactly eight digits."""

    digits: str

    def __post_init__(self) -> None:
        if len(self.digits) != 8 or not self.digits.isdigit():
            raise ValidationError(
                "Postal code must contain exactly 8 digits",
                {"postal_code": "must contain exactly 8 digits"},
            )

    @staticmethod
    def parse(raw: str | None) -> PostalCode:
        """Normalize ``'01310-100'`` / ``'01310100'`` into a PostalCode."""
        return PostalCode(digits_only(raw))

    @staticmethod
    def is_valid(raw: str | None) -> bool:
        return len(digits_only(raw)) == 8

    def formatted(self) -> str:
        return f"{self.digits[:5]}-{self.digits[5:]}"

    def __str__(self) -> str:
        return self.formatted()
