from __future__ import annotations

import asyncio
from typing import Any

from .builder import build_order
from .clob_rest import RestClient
from .errors import VenueError
from .log import get_logger
from .models import (
    BuilderConfig,
    OrderResponse,
    OrderSubmission,
    SignedOrder,
    SigningContext,
    TradeIntent,
    UnsignedOrder,
)
from .signer import OrderSigner
from .validator import validate_signed_order
from .venue import VenueCache

logger = get_logger(__name__)


class OrderClient:
    """Build, sign and submit orders for one account."""

    def __init__(
        self,
        *,
        rest: RestClient,
        order_signer: OrderSigner,
        builder_config: BuilderConfig,
        owner_id: int,
        chain_id: int,
        venues: VenueCache | None = None,
    ) -> None:
        self._rest = rest
        self._signer = order_signer
        self._builder_config = builder_config
        self._owner_id = owner_id
        self._chain_id = chain_id
        self._venues = venues or VenueCache(fetcher=rest.get_market)

    @property
    def venues(self) -> VenueCache:
        return self._venues

    def build_unsigned_order(self, intent: TradeIntent) -> UnsignedOrder:
        return build_order(intent, self._builder_config)

    async def signing_context(self, market_slug: str) -> SigningContext:
        venue = await self._venues.resolve_venue(market_slug)
        if not venue.exchange:
            raise VenueError(f"market {market_slug} has no venue exchange address")
        return SigningContext(chain_id=self._chain_id, verifying_contract=venue.exchange)

    async def sign_order(self, order: UnsignedOrder, market_slug: str) -> SignedOrder:
        context = await self.signing_context(market_slug)
        signed = await self._signer.sign(order, context)
        validate_signed_order(signed)
        return signed

    async def create_order(self, intent: TradeIntent, market_slug: str) -> OrderResponse:
        logger.info(
            "order_create",
            order_type=intent.order_type.value,
            side=int(intent.side),
            market_slug=market_slug,
        )
        order = self.build_unsigned_order(intent)
        signed = await self.sign_order(order, market_slug)
        submission = OrderSubmission(
            order=signed,
            order_type=intent.order_type,
            market_slug=market_slug,
            owner_id=self._owner_id,
        )
        data = await asyncio.to_thread(self._rest.submit_order, submission.to_wire())
        response = OrderResponse.from_api(data)
        logger.info(
            "order_submitted",
            order_id=response.order_id,
            matches=len(response.maker_matches),
        )
        return response

    def get_order(self, order_id: str) -> dict[str, Any]:
        return self._rest.get_order(order_id)

    def cancel(self, order_id: str) -> dict[str, Any]:
        logger.info("order_cancel", order_id=order_id)
        return self._rest.cancel_order(order_id)

    def cancel_all(self, market_slug: str) -> dict[str, Any]:
        logger.info("order_cancel_all", market_slug=market_slug)
        return self._rest.cancel_all(market_slug)
