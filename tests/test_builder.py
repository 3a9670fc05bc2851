import dataclasses
import time

import pytest

from limitless_orders import builder
from limitless_orders.builder import build_order, generate_salt, limit_amounts, market_amounts
from limitless_orders.errors import (
    MalformedFieldError,
    PrecisionError,
    RangeError,
    TickAlignmentError,
)
from limitless_orders.fixed import PRICE_SCALE, SHARES_SCALE, parse_decimal
from limitless_orders.models import (
    ZERO_ADDRESS,
    BuilderConfig,
    LimitIntent,
    MarketIntent,
    OrderType,
    Side,
    SignatureType,
)

MAKER = "0x1111111111111111111111111111111111111111"
TOKEN_ID = "19633204485790857949828516737993423758628930235371629943999544859324645414627"


def _config(**kwargs) -> BuilderConfig:
    return BuilderConfig(maker_address=MAKER, fee_rate_bps=300, **kwargs)


def test_market_buy_spend_amount():
    order = build_order(MarketIntent(token_id=TOKEN_ID, side=Side.BUY, amount="50"), _config())
    assert order.maker_amount == 50_000_000
    assert order.taker_amount == 1
    assert order.price is None


def test_market_sell_fractional_shares():
    assert market_amounts("18.64") == (18_640_000, 1)
    assert market_amounts("0.000001") == (1, 1)


def test_limit_buy_half_price():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.5", size="10")
    order = build_order(intent, _config())
    assert order.maker_amount == 5_000_000
    assert order.taker_amount == 10_000_000
    assert order.price == "0.5"


def test_limit_sell_swaps_legs():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.SELL, price="0.5", size="10")
    order = build_order(intent, _config())
    assert order.maker_amount == 10_000_000
    assert order.taker_amount == 5_000_000


def test_limit_misaligned_size_suggests_neighbours():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.380", size="22.123896")
    with pytest.raises(TickAlignmentError) as excinfo:
        build_order(intent, _config())
    err = excinfo.value
    assert err.field == "size"
    assert err.step == "0.001"
    assert err.floor == "22.123"
    assert err.ceiling == "22.124"
    assert err.suggestions == ["22.123", "22.124"]
    assert "22.123" in str(err) and "22.124" in str(err)


def test_limit_amounts_shares_step_for_default_tick():
    amounts = limit_amounts("0.380", "22.123", Side.BUY)
    assert amounts.shares_step == 1000
    assert amounts.shares == 22_123_000
    assert amounts.collateral == 8_406_740
    assert amounts.maker_amount == 8_406_740
    assert amounts.taker_amount == 22_123_000


def test_size_below_one_step_only_suggests_ceiling():
    with pytest.raises(TickAlignmentError) as excinfo:
        limit_amounts("0.5", "0.0005", Side.BUY)
    assert excinfo.value.floor is None
    assert excinfo.value.suggestions == ["0.001"]


def test_price_not_on_tick():
    with pytest.raises(TickAlignmentError) as excinfo:
        limit_amounts("0.385", "10", Side.BUY, tick="0.01")
    assert excinfo.value.field == "price"
    assert excinfo.value.floor == "0.38"
    assert excinfo.value.ceiling == "0.39"


def test_coarser_tick_through_build_order():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.382", size="10")
    with pytest.raises(TickAlignmentError) as excinfo:
        build_order(intent, _config(price_tick="0.005"))
    assert excinfo.value.suggestions == ["0.38", "0.385"]
    ok = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.385", size="10.2")
    order = build_order(ok, _config(price_tick="0.005"))
    assert order.taker_amount == 10_200_000
    assert order.maker_amount == 3_927_000


def test_tick_must_divide_scale():
    with pytest.raises(RangeError):
        limit_amounts("0.003", "10", Side.BUY, tick="0.003")
    with pytest.raises(RangeError):
        limit_amounts("0.5", "10", Side.BUY, tick="0")


def test_accepted_limit_orders_have_exact_collateral():
    prices = ["0.001", "0.38", "0.5", "0.731", "0.999"]
    sizes = ["1", "22.123", "0.001", "1000.5"]
    for price in prices:
        price_units = parse_decimal(price, PRICE_SCALE)
        for size in sizes:
            buy = limit_amounts(price, size, Side.BUY)
            sell = limit_amounts(price, size, Side.SELL)
            exact_numerator = buy.shares * price_units
            assert exact_numerator % PRICE_SCALE == 0
            assert buy.collateral * PRICE_SCALE >= exact_numerator
            assert sell.collateral * PRICE_SCALE <= exact_numerator
            assert buy.maker_amount * PRICE_SCALE == buy.taker_amount * price_units
            assert sell.taker_amount * PRICE_SCALE == sell.maker_amount * price_units


def test_rounding_direction_helpers():
    numerator = 22_123_456 * 380_000 * SHARES_SCALE
    denominator = SHARES_SCALE * PRICE_SCALE
    assert builder.ceil_div(numerator, denominator) == 8_406_914
    assert builder.floor_div(numerator, denominator) == 8_406_913


def test_price_range_rejected():
    for price in ("0", "1", "1.5", "-0.2"):
        intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price=price, size="10")
        with pytest.raises(RangeError):
            build_order(intent, _config())


def test_price_precision_rejected():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.3805", size="10")
    with pytest.raises(PrecisionError) as excinfo:
        build_order(intent, _config())
    assert excinfo.value.digits == 4
    assert excinfo.value.max_digits == 3


def test_market_amount_precision_names_digit_count():
    intent = MarketIntent(token_id=TOKEN_ID, side=Side.BUY, amount="1.1234567")
    with pytest.raises(PrecisionError) as excinfo:
        build_order(intent, _config())
    assert excinfo.value.digits == 7
    assert "7 decimal places" in str(excinfo.value)


def test_non_positive_amounts_rejected():
    for amount in ("0", "-5", "0.000000"):
        with pytest.raises(RangeError):
            build_order(MarketIntent(token_id=TOKEN_ID, side=Side.BUY, amount=amount), _config())
    with pytest.raises(RangeError):
        build_order(
            LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.5", size="0"), _config()
        )


def test_token_id_checked():
    for token_id in ("0", "abc", ""):
        with pytest.raises(MalformedFieldError):
            build_order(MarketIntent(token_id=token_id, side=Side.BUY, amount="1"), _config())


def test_float_inputs_rejected():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price=0.5, size="10")
    with pytest.raises(TypeError):
        build_order(intent, _config())


def test_unknown_intent_type_rejected():
    @dataclasses.dataclass(frozen=True)
    class Other:
        token_id: str = TOKEN_ID
        side: Side = Side.BUY
        taker: str | None = None
        expiration: str | None = None
        nonce: int | None = None

    with pytest.raises(TypeError):
        build_order(Other(), _config())


def test_order_fields_filled_from_config_and_intent():
    taker = "0x2222222222222222222222222222222222222222"
    intent = LimitIntent(
        token_id=TOKEN_ID,
        side=Side.BUY,
        price="0.380",
        size="10",
        taker=taker,
        expiration="1767225600",
        nonce=7,
    )
    order = build_order(intent, _config(), salt=12345)
    assert order.salt == 12345
    assert order.maker == MAKER
    assert order.signer == MAKER
    assert order.taker == taker
    assert order.expiration == "1767225600"
    assert order.nonce == 7
    assert order.fee_rate_bps == 300
    assert order.signature_type == SignatureType.EOA
    assert order.price == "0.38"
    assert intent.order_type == OrderType.GTC


def test_defaults_for_optional_intent_fields():
    order = build_order(MarketIntent(token_id=TOKEN_ID, side=Side.SELL, amount="3"), _config())
    assert order.taker == ZERO_ADDRESS
    assert order.expiration == "0"
    assert order.nonce == 0
    assert order.side == Side.SELL


def test_wire_amounts_are_integer_strings():
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.5", size="10")
    wire = build_order(intent, _config(), salt=99).to_wire()
    assert wire["makerAmount"] == "5000000"
    assert wire["takerAmount"] == "10000000"
    assert wire["tokenId"] == TOKEN_ID
    assert wire["side"] == 0
    assert wire["price"] == "0.5"
    market = build_order(MarketIntent(token_id=TOKEN_ID, side=Side.BUY, amount="50"), _config())
    assert "price" not in market.to_wire()
    assert market.to_wire()["takerAmount"] == "1"


def test_builder_config_is_immutable():
    cfg = _config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.fee_rate_bps = 0


def test_generate_salt_includes_day_offset():
    before_ms = time.time_ns() // 1_000_000
    salt = generate_salt()
    assert salt >= before_ms * 1000 + builder.SALT_DAY_OFFSET_MS


def test_salts_distinct_across_rapid_builds():
    cfg = _config()
    intent = LimitIntent(token_id=TOKEN_ID, side=Side.BUY, price="0.5", size="10")
    salts = {build_order(intent, cfg).salt for _ in range(10_000)}
    assert len(salts) == 10_000


def test_salt_never_repeats_when_clock_stalls(monkeypatch):
    monkeypatch.setattr(builder.time, "time_ns", lambda: 1_700_000_000_000_000_000)
    monkeypatch.setattr(builder.time, "perf_counter_ns", lambda: 5_000)
    first = generate_salt()
    second = generate_salt()
    assert second == first + 1


def test_market_amounts_rejects_extra_digits_when_called_directly():
    with pytest.raises(PrecisionError) as excinfo:
        market_amounts("1.0000009")
    assert excinfo.value.field == "amount"
    assert excinfo.value.digits == 7


def test_limit_amounts_rejects_extra_digits_when_called_directly():
    with pytest.raises(PrecisionError) as excinfo:
        limit_amounts("0.5", "10.0000009", Side.BUY)
    assert excinfo.value.field == "size"
    with pytest.raises(PrecisionError) as excinfo:
        limit_amounts("0.5000001", "10", Side.SELL)
    assert excinfo.value.field == "price"
