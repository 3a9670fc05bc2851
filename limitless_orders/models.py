from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Union

from web3 import Web3

from .fixed import DEFAULT_PRICE_TICK

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Side(IntEnum):
    BUY = 0
    SELL = 1

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text in {"BUY", "0"}:
            return cls.BUY
        if text in {"SELL", "1"}:
            return cls.SELL
        raise ValueError(f"invalid side: {value}")


class OrderType(str, Enum):
    FOK = "FOK"
    GTC = "GTC"


class SignatureType(IntEnum):
    EOA = 0
    POLY_PROXY = 1
    POLY_GNOSIS_SAFE = 2


@dataclass(frozen=True)
class MarketIntent:
    """Fill-or-kill: spend (BUY, collateral) or sell (SELL, shares) `amount`."""

    token_id: str
    side: Side
    amount: str
    taker: str | None = None
    expiration: str | None = None
    nonce: int | None = None

    @property
    def order_type(self) -> OrderType:
        return OrderType.FOK


@dataclass(frozen=True)
class LimitIntent:
    """Good-til-cancelled: `size` shares at `price` collateral per share."""

    token_id: str
    side: Side
    price: str
    size: str
    taker: str | None = None
    expiration: str | None = None
    nonce: int | None = None

    @property
    def order_type(self) -> OrderType:
        return OrderType.GTC


TradeIntent = Union[MarketIntent, LimitIntent]


@dataclass(frozen=True)
class BuilderConfig:
    maker_address: str
    fee_rate_bps: int = 0
    price_tick: str = DEFAULT_PRICE_TICK
    signature_type: SignatureType = SignatureType.EOA
    signer_address: str | None = None

    @property
    def signer(self) -> str:
        return self.signer_address or self.maker_address


@dataclass(frozen=True)
class SigningContext:
    chain_id: int
    verifying_contract: str


@dataclass(frozen=True)
class UnsignedOrder:
    salt: int
    maker: str
    signer: str
    taker: str
    token_id: str
    maker_amount: int
    taker_amount: int
    expiration: str
    nonce: int
    fee_rate_bps: int
    side: Side
    signature_type: SignatureType
    # display only, never part of the signed message
    price: str | None = None

    def typed_message(self) -> dict[str, Any]:
        return {
            "salt": int(self.salt),
            "maker": Web3.to_checksum_address(self.maker),
            "signer": Web3.to_checksum_address(self.signer),
            "taker": Web3.to_checksum_address(self.taker),
            "tokenId": int(self.token_id),
            "makerAmount": int(self.maker_amount),
            "takerAmount": int(self.taker_amount),
            "expiration": int(self.expiration),
            "nonce": int(self.nonce),
            "feeRateBps": int(self.fee_rate_bps),
            "side": int(self.side),
            "signatureType": int(self.signature_type),
        }

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "salt": int(self.salt),
            "maker": self.maker,
            "signer": self.signer,
            "taker": self.taker,
            "tokenId": str(self.token_id),
            "makerAmount": str(int(self.maker_amount)),
            "takerAmount": str(int(self.taker_amount)),
            "expiration": str(self.expiration),
            "nonce": int(self.nonce),
            "feeRateBps": int(self.fee_rate_bps),
            "side": int(self.side),
            "signatureType": int(self.signature_type),
        }
        if self.price is not None:
            payload["price"] = self.price
        return payload


@dataclass(frozen=True)
class SignedOrder:
    order: UnsignedOrder
    signature: str
    chain_id: int
    verifying_contract: str

    def to_wire(self) -> dict[str, Any]:
        payload = self.order.to_wire()
        payload["signature"] = self.signature
        return payload


@dataclass(frozen=True)
class OrderSubmission:
    order: SignedOrder
    order_type: OrderType
    market_slug: str
    owner_id: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "order": self.order.to_wire(),
            "orderType": OrderType(self.order_type).value,
            "marketSlug": self.market_slug,
            "ownerId": self.owner_id,
        }


@dataclass(frozen=True)
class Venue:
    exchange: str
    adapter: str | None = None

    @classmethod
    def from_market(cls, market: dict[str, Any]) -> "Venue | None":
        venue = market.get("venue") if isinstance(market, dict) else None
        if not isinstance(venue, dict):
            return None
        exchange = venue.get("exchange")
        if not exchange:
            return None
        return cls(exchange=str(exchange), adapter=venue.get("adapter") or None)


@dataclass(frozen=True)
class UserData:
    user_id: int
    fee_rate_bps: int

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> "UserData":
        rank = profile.get("rank") if isinstance(profile.get("rank"), dict) else {}
        fee = rank.get("feeRateBps", profile.get("feeRateBps", 0))
        return cls(user_id=int(profile["id"]), fee_rate_bps=int(fee or 0))


@dataclass(frozen=True)
class OrderMatch:
    id: str
    created_at: str | None
    matched_size: str
    order_id: str


@dataclass(frozen=True)
class OrderResponse:
    order: dict[str, Any]
    maker_matches: list[OrderMatch] = field(default_factory=list)

    @property
    def order_id(self) -> str | None:
        value = self.order.get("id")
        return None if value is None else str(value)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "OrderResponse":
        raw_order = data.get("order")
        if not isinstance(raw_order, dict):
            raise ValueError("unexpected order response shape")
        keys = (
            "id",
            "createdAt",
            "makerAmount",
            "takerAmount",
            "expiration",
            "signatureType",
            "salt",
            "maker",
            "signer",
            "taker",
            "tokenId",
            "side",
            "feeRateBps",
            "nonce",
            "signature",
            "orderType",
            "price",
            "marketId",
        )
        order = {key: raw_order.get(key) for key in keys}
        matches = [
            OrderMatch(
                id=str(match.get("id")),
                created_at=match.get("createdAt"),
                matched_size=str(match.get("matchedSize")),
                order_id=str(match.get("orderId")),
            )
            for match in data.get("makerMatches") or []
        ]
        return cls(order=order, maker_matches=matches)
