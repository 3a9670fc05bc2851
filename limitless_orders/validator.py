from __future__ import annotations

import re
from typing import Any

from web3 import Web3

from .errors import MalformedFieldError, PrecisionError, RangeError
from .fixed import (
    AMOUNT_DECIMALS,
    DEFAULT_PRICE_TICK,
    PRICE_SCALE,
    SHARES_SCALE,
    fractional_digits,
    parse_decimal,
)
from .models import (
    LimitIntent,
    MarketIntent,
    Side,
    SignatureType,
    SignedOrder,
    TradeIntent,
    UnsignedOrder,
)

SIGNATURE_BYTES = 65
SIGNATURE_HEX_LEN = 2 + 2 * SIGNATURE_BYTES

_UINT_RE = re.compile(r"[0-9]+")
_SIGNATURE_RE = re.compile(r"0x[0-9a-fA-F]{%d}" % (2 * SIGNATURE_BYTES))


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(Web3.is_address(value))


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _check_address(field: str, value: Any) -> None:
    if not is_address(value):
        raise MalformedFieldError(field, value, "not a valid address")


def _check_token_id(value: Any) -> None:
    if not isinstance(value, str) or not _UINT_RE.fullmatch(value):
        raise MalformedFieldError("tokenId", value, "must be a numeric string")
    if int(value) == 0:
        raise MalformedFieldError("tokenId", value, "must be non-zero")


def _check_expiration(value: Any) -> None:
    if not isinstance(value, str) or not _UINT_RE.fullmatch(value):
        raise MalformedFieldError("expiration", value, "must be a numeric string")


def _check_side(value: Any) -> None:
    if isinstance(value, bool) or value not in (Side.BUY, Side.SELL):
        raise MalformedFieldError("side", value, "must be 0 (BUY) or 1 (SELL)")


def check_precision(field: str, value: Any, max_digits: int) -> None:
    digits = fractional_digits(value, field)
    if digits > max_digits:
        raise PrecisionError(field, value, digits, max_digits)


def _check_positive(field: str, value: Any, scale: int) -> None:
    if parse_decimal(value, scale, field) <= 0:
        raise RangeError(field, value, "must be positive")


def validate_intent(intent: TradeIntent, *, price_tick: str = DEFAULT_PRICE_TICK) -> None:
    """Reject an intent before any amounts are computed."""
    _check_token_id(intent.token_id)
    _check_side(intent.side)
    if intent.taker is not None:
        _check_address("taker", intent.taker)
    if intent.expiration is not None:
        _check_expiration(intent.expiration)
    if intent.nonce is not None and not _is_uint(intent.nonce):
        raise MalformedFieldError("nonce", intent.nonce, "must be a non-negative integer")

    if isinstance(intent, MarketIntent):
        check_precision("amount", intent.amount, AMOUNT_DECIMALS)
        _check_positive("amount", intent.amount, SHARES_SCALE)
    elif isinstance(intent, LimitIntent):
        check_precision("price", intent.price, fractional_digits(price_tick, "priceTick"))
        price_units = parse_decimal(intent.price, PRICE_SCALE, "price")
        if price_units <= 0 or price_units >= PRICE_SCALE:
            raise RangeError("price", intent.price, "must be between 0 and 1 exclusive")
        check_precision("size", intent.size, AMOUNT_DECIMALS)
        _check_positive("size", intent.size, SHARES_SCALE)
    else:
        raise TypeError(f"unsupported intent type: {type(intent).__name__}")


def validate_order(order: UnsignedOrder) -> None:
    """Structural checks on a built order, independent of how it was built."""
    _check_address("maker", order.maker)
    _check_address("signer", order.signer)
    _check_address("taker", order.taker)
    _check_token_id(order.token_id)
    _check_expiration(order.expiration)
    for name, value in (("makerAmount", order.maker_amount), ("takerAmount", order.taker_amount)):
        if not _is_uint(value) or value == 0:
            raise MalformedFieldError(name, value, "must be a positive integer")
    if not _is_uint(order.salt):
        raise MalformedFieldError("salt", order.salt, "must be a non-negative integer")
    if not _is_uint(order.nonce):
        raise MalformedFieldError("nonce", order.nonce, "must be a non-negative integer")
    if not _is_uint(order.fee_rate_bps):
        raise MalformedFieldError(
            "feeRateBps", order.fee_rate_bps, "must be a non-negative integer"
        )
    _check_side(order.side)
    if isinstance(order.signature_type, bool) or order.signature_type not in set(SignatureType):
        raise MalformedFieldError("signatureType", order.signature_type, "unknown signature type")
    if order.price is not None:
        price_units = parse_decimal(order.price, PRICE_SCALE, "price")
        if price_units <= 0 or price_units >= PRICE_SCALE:
            raise MalformedFieldError("price", order.price, "must be between 0 and 1 exclusive")


def validate_signed_order(signed: SignedOrder) -> None:
    validate_order(signed.order)
    signature = signed.signature
    if not isinstance(signature, str) or not signature:
        raise MalformedFieldError("signature", signature, "signature is required")
    if not signature.startswith("0x"):
        raise MalformedFieldError("signature", signature, "must start with 0x")
    if len(signature) != SIGNATURE_HEX_LEN:
        raise MalformedFieldError(
            "signature",
            signature,
            f"length {len(signature)}, expected {SIGNATURE_HEX_LEN} characters",
        )
    if not _SIGNATURE_RE.fullmatch(signature):
        raise MalformedFieldError("signature", signature, "not a hex string")
    if len(bytes.fromhex(signature[2:])) != SIGNATURE_BYTES:
        raise MalformedFieldError("signature", signature, f"must decode to {SIGNATURE_BYTES} bytes")
    _check_address("verifyingContract", signed.verifying_contract)
