"""Public postal-code (CEP) lookup over ViaCEP.

``GET {base}/{cep}/json/`` answers ``{logradouro, bairro, localidade, uf}``
for a known code and ``{"erro": true}`` for an unknown one.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaError

from checkout.domain.exceptions import ResolverUnavailable
from checkout.domain.gateway.address_gateway import PostalCodeLookup
from checkout.domain.model.address import PostalCodeInfo
from checkout.domain.model.value_objects import PostalCode

logger = logging.getLogger(__name__)


class ViaCepResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    erro: Union[bool, str, None] = None
    logradouro: str = ""
    bairro: str = ""
    localidade: str = ""
    uf: str = ""

    @property
    def not_found(self) -> bool:
        return self.erro in (True, "true")


class ViaCepClient(PostalCodeLookup):

    def __init__(
        self,
        base_url: str = "https://viacep.com.br/ws",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/", timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def lookup(self, postal_code: PostalCode) -> Optional[PostalCodeInfo]:
        try:
            response = await self._client.get(f"{postal_code.digits}/json/")
        except httpx.TransportError as exc:
            raise ResolverUnavailable(f"Postal code lookup failed: {exc}") from exc

        logger.debug("Postal code lookup %s -> %s", postal_code, response.status_code)
        if response.status_code == 400:
            return None
        if response.status_code != 200:
            raise ResolverUnavailable(
                f"Postal code lookup answered with status {response.status_code}"
            )

        try:
            data = ViaCepResponse.model_validate(response.json())
        except (ValueError, SchemaError) as exc:
            raise ResolverUnavailable("Malformed postal code lookup response") from exc

        if data.not_found:
            return None
        return PostalCodeInfo(
            postal_code=postal_code,
            street=data.logradouro,
            neighborhood=data.bairro,
            city=data.localidade,
            state=data.uf.upper(),
        )
