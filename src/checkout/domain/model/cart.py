"""Cart aggregate — the client-held working set of intended purchases.

The cart is owned by the client session and persisted locally.  Lines
are keyed by (product, size, color): adding the same key twice merges
quantities instead of creating a duplicate line.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from checkout.domain.exceptions import ValidationError
from checkout.domain.model.value_objects import Money, Quantity

GRAMS_PER_UNIT = 200


@dataclass
class CartLine:
    product_id: int
    name: str
    quantity: Quantity
    unit_price: Money
    size: str = ""
    color: str = ""
    variant_id: int | None = None

    @property
    def key(self) -> tuple[int, str, str]:
        return (self.product_id, self.size, self.color)

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Cart:
    """Aggregate root for the shopping cart.

    Invariants:
    - every line has a positive quantity
    - no two lines share the same (product_id, size, color)
    """

    lines: list[CartLine] = field(default_factory=list)

    def add(
        self,
        product_id: int,
        name: str,
        quantity: int,
        unit_price: Money,
        size: str = "",
        color: str = "",
        variant_id: int | None = None,
    ) -> CartLine:
        """Add units of a product, merging into an existing line if any."""
        qty = Quantity(quantity)
        existing = self._find((product_id, size, color))
        if existing is not None:
            existing.quantity = Quantity(existing.quantity.value + qty.value)
            return existing

        line = CartLine(
            product_id=product_id,
            name=name,
            quantity=qty,
            unit_price=unit_price,
            size=size,
            color=color,
            variant_id=variant_id,
        )
        self.lines.append(line)
        return line

    def update_quantity(
        self, product_id: int, quantity: int, size: str = "", color: str = ""
    ) -> None:
        """Set the quantity of a line; zero or less removes it."""
        if quantity <= 0:
            self.remove(product_id, size, color)
            return
        line = self._find((product_id, size, color))
        if line is None:
            raise ValidationError(f"Product {product_id} ({size}/{color}) is not in the cart")
        line.quantity = Quantity(quantity)

    def remove(self, product_id: int, size: str = "", color: str = "") -> None:
        self.lines = [line for line in self.lines if line.key != (product_id, size, color)]

    def clear(self) -> None:
        self.lines = []

    # --- Computed properties --------------------------------------------------

    def snapshot(self) -> tuple[tuple[tuple[int, str, str], int, Money], ...]:
        """Lines as comparable values, in a stable order."""
        return tuple(sorted(
            ((line.key, line.quantity.value, line.unit_price) for line in self.lines),
            key=lambda entry: entry[0],
        ))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity.value for line in self.lines)

    @property
    def subtotal(self) -> Money:
        result = Money.zero()
        for line in self.lines:
            result = result + line.line_total
        return result

    @property
    def total_weight_grams(self) -> int:
        return self.total_items * GRAMS_PER_UNIT

    # --- Internal helpers -----------------------------------------------------

    def _find(self, key: tuple[int, str, str]) -> CartLine | None:
        for line in self.lines:
            if line.key == key:
                return line
        return None
