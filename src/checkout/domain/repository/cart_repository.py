"""Abstract client-local store for the Cart aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.cart import Cart


class CartRepository(ABC):

    @abstractmethod
    def load(self) -> Cart:
        """Return the persisted cart, or an empty one."""

    @abstractmethod
    def save(self, cart: Cart) -> None:
        """Persist the cart, replacing what was stored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored line."""
