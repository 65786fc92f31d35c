"""Application service: cart maintenance use cases.

Loads the cart from its client-local store, applies one mutation and
persists it again.  The checkout orchestrator reuses this handler so a
cart edit during checkout also invalidates a stale coupon.
"""

from __future__ import annotations

from checkout.application.dto import CartDTO, CartLineDTO
from checkout.domain.model.cart import Cart
from checkout.domain.model.value_objects import Money
from checkout.domain.repository.cart_repository import CartRepository


class CartHandler:

    def __init__(self, cart_repo: CartRepository) -> None:
        self._cart_repo = cart_repo

    def load(self) -> Cart:
        return self._cart_repo.load()

    def add(
        self,
        product_id: int,
        name: str,
        quantity: int,
        unit_price: str,
        size: str = "",
        color: str = "",
        variant_id: int | None = None,
    ) -> CartDTO:
        cart = self._cart_repo.load()
        cart.add(
            product_id=product_id,
            name=name,
            quantity=quantity,
            unit_price=Money.of(unit_price),
            size=size,
            color=color,
            variant_id=variant_id,
        )
        self._cart_repo.save(cart)
        return self.to_dto(cart)

    def update_quantity(
        self, product_id: int, quantity: int, size: str = "", color: str = ""
    ) -> CartDTO:
        cart = self._cart_repo.load()
        cart.update_quantity(product_id, quantity, size, color)
        self._cart_repo.save(cart)
        return self.to_dto(cart)

    def remove(self, product_id: int, size: str = "", color: str = "") -> CartDTO:
        cart = self._cart_repo.load()
        cart.remove(product_id, size, color)
        self._cart_repo.save(cart)
        return self.to_dto(cart)

    def clear(self) -> None:
        self._cart_repo.clear()

    def show(self) -> CartDTO:
        return self.to_dto(self._cart_repo.load())

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def to_dto(cart: Cart) -> CartDTO:
        return CartDTO(
            lines=[
                CartLineDTO(
                    product_id=line.product_id,
                    name=line.name,
                    size=line.size,
                    color=line.color,
                    quantity=line.quantity.value,
                    unit_price=str(line.unit_price),
                    line_total=str(line.line_total),
                )
                for line in cart.lines
            ],
            total_items=cart.total_items,
            subtotal=str(cart.subtotal),
        )
