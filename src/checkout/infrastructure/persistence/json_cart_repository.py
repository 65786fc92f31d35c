"""JSON-file-backed implementation of CartRepository."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from checkout.domain.model.cart import Cart, CartLine
from checkout.domain.model.value_objects import Money, Quantity
from checkout.domain.repository.cart_repository import CartRepository


class JsonCartRepository(CartRepository):
    """Stores the cart as a JSON array of line items."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- CartRepository interface ---------------------------------------------

    def load(self) -> Cart:
        return Cart(lines=[self._to_domain(raw) for raw in self._load_raw()])

    def save(self, cart: Cart) -> None:
        self._persist_raw([self._to_raw(line) for line in cart.lines])

    def clear(self) -> None:
        self._persist_raw([])

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(line: CartLine) -> dict:
        return {
            "product_id": line.product_id,
            "variant_id": line.variant_id,
            "name": line.name,
            "size": line.size,
            "color": line.color,
            "quantity": line.quantity.value,
            "unit_price": str(line.unit_price.amount),
        }

    @staticmethod
    def _to_domain(raw: dict) -> CartLine:
        return CartLine(
            product_id=raw["product_id"],
            variant_id=raw.get("variant_id"),
            name=raw["name"],
            size=raw.get("size", ""),
            color=raw.get("color", ""),
            quantity=Quantity(raw["quantity"]),
            unit_price=Money(Decimal(raw["unit_price"])),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, lines: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(lines, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
