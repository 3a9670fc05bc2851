"""Turn trade intents into unsigned orders using scaled-integer arithmetic only.

Limit orders must satisfy two alignment rules before any amounts are
produced: the price is a multiple of the tick, and the share count is a
multiple of ``sharesStep = PRICE_SCALE / tick``, which is what makes
``price * shares`` a whole number of collateral units. Misaligned inputs
are rejected with the nearest valid values rather than rounded silently.

Collateral is rounded up for BUY and down for SELL, so any sub-unit
remainder always lands on the exchange side.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from .errors import RangeError, TickAlignmentError
from .fixed import (
    AMOUNT_DECIMALS,
    COLLATERAL_SCALE,
    DEFAULT_PRICE_TICK,
    PRICE_SCALE,
    SHARES_SCALE,
    DecimalInput,
    canonical_decimal,
    ceil_div,
    floor_div,
    format_decimal,
    parse_decimal,
)
from .log import get_logger
from .models import (
    ZERO_ADDRESS,
    BuilderConfig,
    LimitIntent,
    MarketIntent,
    Side,
    TradeIntent,
    UnsignedOrder,
)
from .validator import check_precision, validate_intent, validate_order

MARKET_TAKER_AMOUNT = 1  # matching engine fills in the counter amount
SALT_DAY_OFFSET_MS = 24 * 60 * 60 * 1000

_salt_lock = threading.Lock()
_last_salt = 0

logger = get_logger(__name__)


@dataclass(frozen=True)
class LimitAmounts:
    maker_amount: int
    taker_amount: int
    shares: int
    collateral: int
    shares_step: int


def generate_salt() -> int:
    """Millisecond clock blended with a microsecond counter.

    Strictly increasing within one process, including across the counter
    wrap; two processes issuing in the same millisecond can still collide.
    """
    global _last_salt
    timestamp_ms = time.time_ns() // 1_000_000
    sub_ms = (time.perf_counter_ns() // 1_000) % 1_000_000
    salt = timestamp_ms * 1000 + sub_ms + SALT_DAY_OFFSET_MS
    with _salt_lock:
        if salt <= _last_salt:
            salt = _last_salt + 1
        _last_salt = salt
    return salt


def market_amounts(amount: DecimalInput) -> tuple[int, int]:
    check_precision("amount", amount, AMOUNT_DECIMALS)
    maker_amount = parse_decimal(amount, COLLATERAL_SCALE, "amount")
    if maker_amount <= 0:
        raise RangeError("amount", amount, "must be positive")
    return maker_amount, MARKET_TAKER_AMOUNT


def _tick_units(tick: DecimalInput) -> int:
    tick_units = parse_decimal(tick, PRICE_SCALE, "priceTick")
    if tick_units <= 0:
        raise RangeError("priceTick", tick, "must be positive")
    if PRICE_SCALE % tick_units:
        raise RangeError("priceTick", tick, f"must divide {format_decimal(1, PRICE_SCALE)} evenly")
    return tick_units


def limit_amounts(
    price: DecimalInput,
    size: DecimalInput,
    side: Side,
    tick: DecimalInput = DEFAULT_PRICE_TICK,
) -> LimitAmounts:
    check_precision("price", price, AMOUNT_DECIMALS)
    check_precision("size", size, AMOUNT_DECIMALS)
    tick_units = _tick_units(tick)
    price_units = parse_decimal(price, PRICE_SCALE, "price")
    if price_units <= 0:
        raise RangeError("price", price, "must be positive")
    if price_units % tick_units:
        down = price_units // tick_units * tick_units
        up = ceil_div(price_units, tick_units) * tick_units
        raise TickAlignmentError(
            "price",
            price,
            step=format_decimal(tick_units, PRICE_SCALE),
            floor=format_decimal(down, PRICE_SCALE) if down > 0 else None,
            ceiling=format_decimal(up, PRICE_SCALE),
        )

    shares = parse_decimal(size, SHARES_SCALE, "size")
    if shares <= 0:
        raise RangeError("size", size, "must be positive")
    shares_step = PRICE_SCALE // tick_units
    if shares % shares_step:
        down = shares // shares_step * shares_step
        up = ceil_div(shares, shares_step) * shares_step
        raise TickAlignmentError(
            "size",
            size,
            step=format_decimal(shares_step, SHARES_SCALE),
            floor=format_decimal(down, SHARES_SCALE) if down > 0 else None,
            ceiling=format_decimal(up, SHARES_SCALE),
        )

    numerator = shares * price_units * COLLATERAL_SCALE
    denominator = SHARES_SCALE * PRICE_SCALE
    if side == Side.BUY:
        collateral = ceil_div(numerator, denominator)
        return LimitAmounts(collateral, shares, shares, collateral, shares_step)
    collateral = floor_div(numerator, denominator)
    return LimitAmounts(shares, collateral, shares, collateral, shares_step)


def build_order(
    intent: TradeIntent,
    config: BuilderConfig,
    *,
    salt: int | None = None,
) -> UnsignedOrder:
    validate_intent(intent, price_tick=config.price_tick)
    side = Side(intent.side)
    price = None
    if isinstance(intent, MarketIntent):
        maker_amount, taker_amount = market_amounts(intent.amount)
    elif isinstance(intent, LimitIntent):
        amounts = limit_amounts(intent.price, intent.size, side, config.price_tick)
        maker_amount, taker_amount = amounts.maker_amount, amounts.taker_amount
        price = canonical_decimal(intent.price)
    else:
        raise TypeError(f"unsupported intent type: {type(intent).__name__}")

    order = UnsignedOrder(
        salt=generate_salt() if salt is None else salt,
        maker=config.maker_address,
        signer=config.signer,
        taker=intent.taker or ZERO_ADDRESS,
        token_id=intent.token_id,
        maker_amount=maker_amount,
        taker_amount=taker_amount,
        expiration=intent.expiration or "0",
        nonce=intent.nonce or 0,
        fee_rate_bps=config.fee_rate_bps,
        side=side,
        signature_type=config.signature_type,
        price=price,
    )
    validate_order(order)
    logger.debug(
        "order_built",
        order_type=intent.order_type.value,
        token_id=order.token_id,
        side=side.name,
        maker_amount=maker_amount,
        taker_amount=taker_amount,
        salt=order.salt,
    )
    return order
