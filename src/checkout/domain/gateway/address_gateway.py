"""Remote address book and postal-code lookup."""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.address import Address, PostalCodeInfo
from checkout.domain.model.value_objects import PostalCode


class AddressGateway(ABC):

    @abstractmethod
    async def list_addresses(self, user_id: int) -> list[Address]:
        """Return the user's saved addresses."""

    @abstractmethod
    async def create_address(self, address: Address) -> Address:
        """Persist a new address and return it with its id."""


class PostalCodeLookup(ABC):

    @abstractmethod
    async def lookup(self, postal_code: PostalCode) -> PostalCodeInfo | None:
        """Resolve a postal code, or None when it does not exist.

        Raises ResolverUnavailable when the lookup service is down.
        """
