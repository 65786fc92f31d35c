"""Application service: Card Tokenizer.

Validates raw card fields locally and exchanges them for a single-use
token.  Raw fields are never stored or logged here.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from checkout.domain.gateway.payment_gateway import PaymentGateway
from checkout.domain.model.card import CardDetails, CardToken

logger = logging.getLogger(__name__)


class CardTokenizer:

    def __init__(
        self,
        gateway: PaymentGateway,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._gateway = gateway
        self._today = today

    def validate(self, card: CardDetails) -> None:
        card.validate(self._today())

    async def tokenize(self, card: CardDetails) -> CardToken:
        self.validate(card)
        value = await self._gateway.tokenize_card(card)
        logger.info("Card ending %s tokenized (%s)", card.last_digits, card.brand)
        return CardToken(value=value, brand=card.brand, last_digits=card.last_digits)
