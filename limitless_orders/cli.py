from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import fields
from typing import Any

import orjson

from .auth import authenticate
from .builder import build_order
from .client import OrderClient
from .config import Config
from .errors import OrderError, RestError, VenueError
from .log import configure_logging
from .models import LimitIntent, MarketIntent, Side, SigningContext, TradeIntent
from .signer import LocalKeySigner, OrderSigner
from .validator import validate_signed_order
from .venue import VenueCache


def _is_field_type(field_type, expected: type, expected_name: str) -> bool:
    if field_type is expected:
        return True
    if isinstance(field_type, str) and field_type == expected_name:
        return True
    return False


def _str2bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"invalid bool: {value}")


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    for field in fields(Config):
        name = field.name.replace("_", "-")
        if _is_field_type(field.type, bool, "bool"):
            group = parser.add_mutually_exclusive_group()
            group.add_argument(
                f"--{name}",
                dest=field.name,
                nargs="?",
                const=True,
                default=None,
                type=_str2bool,
            )
            group.add_argument(f"--no-{name}", dest=field.name, action="store_false")
        else:
            parser.add_argument(f"--{name}", dest=field.name, default=None)


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field in fields(Config):
        value = getattr(ns, field.name, None)
        if value is None:
            continue
        if _is_field_type(field.type, bool, "bool"):
            overrides[field.name] = _str2bool(value)
        elif _is_field_type(field.type, int, "int"):
            overrides[field.name] = int(value)
        elif _is_field_type(field.type, float, "float"):
            overrides[field.name] = float(value)
        else:
            overrides[field.name] = value
    return overrides


def _add_intent_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--token-id", required=True)
    parser.add_argument("--side", required=True, type=Side.parse)
    parser.add_argument("--amount", help="FOK: collateral to spend (BUY) or shares to sell (SELL)")
    parser.add_argument("--price", help="GTC: price per share")
    parser.add_argument("--size", help="GTC: number of shares")
    parser.add_argument("--taker")
    parser.add_argument("--expiration")
    parser.add_argument("--nonce", type=int)


def intent_from_args(args: argparse.Namespace) -> TradeIntent:
    common = {
        "token_id": args.token_id,
        "side": args.side,
        "taker": args.taker,
        "expiration": args.expiration,
        "nonce": args.nonce,
    }
    if args.amount is not None:
        if args.price is not None or args.size is not None:
            raise ValueError("--amount cannot be combined with --price/--size")
        return MarketIntent(amount=args.amount, **common)
    if args.price is None or args.size is None:
        raise ValueError("provide --amount (FOK) or both --price and --size (GTC)")
    return LimitIntent(price=args.price, size=args.size, **common)


def _print_json(value: Any) -> None:
    print(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode())


def _key_signer(config: Config) -> LocalKeySigner:
    if not config.private_key:
        raise ValueError("private key required (LIMITLESS_PRIVATE_KEY or --private-key)")
    return LocalKeySigner.from_key(config.private_key)


def run_build(config: Config, args: argparse.Namespace) -> int:
    intent = intent_from_args(args)
    key_signer = _key_signer(config) if config.private_key else None
    maker = args.maker or (key_signer.address if key_signer else None)
    if not maker:
        raise ValueError("--maker or a private key is required")
    order = build_order(intent, config.builder_config(maker))
    exchange = args.exchange_address
    if exchange is None and args.market_slug and key_signer and not config.offline:
        rest = config.rest_client()
        try:
            venues = VenueCache(fetcher=rest.get_market)
            exchange = asyncio.run(venues.resolve_venue(args.market_slug)).exchange
        finally:
            rest.close()
    if key_signer is None or exchange is None:
        _print_json({"order": order.to_wire(), "orderType": intent.order_type.value})
        return 0
    context = SigningContext(chain_id=config.chain_id, verifying_contract=exchange)
    signed = asyncio.run(OrderSigner(key_signer).sign(order, context))
    validate_signed_order(signed)
    _print_json({"order": signed.to_wire(), "orderType": intent.order_type.value})
    return 0


def run_submit(config: Config, args: argparse.Namespace) -> int:
    intent = intent_from_args(args)
    key_signer = _key_signer(config)
    rest = config.rest_client()
    try:
        auth = authenticate(rest, key_signer.account)
        client = OrderClient(
            rest=rest,
            order_signer=OrderSigner(key_signer),
            builder_config=config.builder_config(
                key_signer.address, fee_rate_bps=auth.user_data.fee_rate_bps
            ),
            owner_id=auth.user_data.user_id,
            chain_id=config.chain_id,
            venues=VenueCache(fetcher=rest.get_market, ttl_seconds=config.venue_ttl()),
        )
        response = asyncio.run(client.create_order(intent, args.market_slug))
    finally:
        rest.close()
    _print_json(response)
    return 0


def run_venue(config: Config, args: argparse.Namespace) -> int:
    rest = config.rest_client()
    try:
        venues = VenueCache(fetcher=rest.get_market)
        venue = asyncio.run(venues.resolve_venue(args.market_slug))
    finally:
        rest.close()
    _print_json(venue)
    return 0


def run_cancel(config: Config, args: argparse.Namespace) -> int:
    if bool(args.order_id) == bool(args.market_slug):
        raise ValueError("provide exactly one of --order-id or --market-slug")
    key_signer = _key_signer(config)
    rest = config.rest_client()
    try:
        authenticate(rest, key_signer.account)
        if args.order_id:
            result = rest.cancel_order(args.order_id)
        else:
            result = rest.cancel_all(args.market_slug)
    finally:
        rest.close()
    _print_json(result)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="limitless-orders")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    _add_config_args(common)

    build = subparsers.add_parser("build", parents=[common])
    _add_intent_args(build)
    build.add_argument("--maker")
    build.add_argument("--exchange-address")
    build.add_argument("--market-slug")

    submit = subparsers.add_parser("submit", parents=[common])
    _add_intent_args(submit)
    submit.add_argument("--market-slug", required=True)

    venue = subparsers.add_parser("venue", parents=[common])
    venue.add_argument("--market-slug", required=True)

    cancel = subparsers.add_parser("cancel", parents=[common])
    cancel.add_argument("--order-id")
    cancel.add_argument("--market-slug")

    args = parser.parse_args(argv)
    overrides = _cli_overrides(args)
    config = Config.from_env_and_cli(overrides, os.environ)
    configure_logging(config.log_level)

    commands = {
        "build": run_build,
        "submit": run_submit,
        "venue": run_venue,
        "cancel": run_cancel,
    }
    try:
        return commands[args.command](config, args)
    except (OrderError, RestError, VenueError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
