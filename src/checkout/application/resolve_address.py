"""Application service: Address Resolver.

Loads and saves delivery addresses and pre-fills forms from a postal
code.  The postal-code lookup is best effort: any failure only skips the
auto-fill, it never blocks checkout.
"""

from __future__ import annotations

import logging

from checkout.domain.exceptions import NetworkError, ResolverUnavailable
from checkout.domain.gateway.address_gateway import AddressGateway, PostalCodeLookup
from checkout.domain.model.address import Address, PostalCodeInfo, ensure_single_default
from checkout.domain.model.value_objects import PostalCode

logger = logging.getLogger(__name__)


class AddressResolver:

    def __init__(self, gateway: AddressGateway, lookup: PostalCodeLookup) -> None:
        self._gateway = gateway
        self._lookup = lookup

    async def list_addresses(self, user_id: int) -> list[Address]:
        addresses = await self._gateway.list_addresses(user_id)
        return ensure_single_default(addresses)

    async def resolve_postal_code(self, raw: str) -> PostalCodeInfo | None:
        if not PostalCode.is_valid(raw):
            return None
        postal_code = PostalCode.parse(raw)
        try:
            info = await self._lookup.lookup(postal_code)
        except (ResolverUnavailable, NetworkError) as exc:
            logger.warning("Postal code lookup unavailable for %s: %s", postal_code, exc)
            return None
        if info is None:
            logger.info("Postal code %s not found", postal_code)
        return info

    async def create_address(self, data: dict[str, str], existing_count: int = 0) -> Address:
        """Validate locally, then persist.

        The first address a user saves becomes the default one.
        """
        address = Address.create(data, is_default=existing_count == 0)
        return await self._gateway.create_address(address)
