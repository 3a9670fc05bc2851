from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from .clob_rest import DEFAULT_API_URL, RestClient
from .fixed import DEFAULT_PRICE_TICK
from .models import BuilderConfig, SignatureType

ENV_PREFIX = "LIMITLESS_"
BASE_MAINNET_CHAIN_ID = 8453
BASE_SEPOLIA_CHAIN_ID = 84532


def _parse_bool(value: str) -> bool:
    val = str(value).strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"invalid bool: {value}")


def _parse_number(value: str, target_type: Any) -> Any:
    if target_type in {int, "int"}:
        return int(value)
    if target_type in {float, "float"}:
        return float(value)
    return value


@dataclass
class Config:
    api_base_url: str = DEFAULT_API_URL
    chain_id: int = BASE_MAINNET_CHAIN_ID
    rest_timeout: float = 30.0
    rest_rate_per_sec: int = 10
    rest_burst: int = 20
    rest_retry_max: int = 3
    rest_retry_backoff: float = 0.5
    price_tick: str = DEFAULT_PRICE_TICK
    fee_rate_bps: int = 0
    signature_type: int = int(SignatureType.EOA)
    venue_cache_ttl_seconds: float = 0.0
    log_level: str = "INFO"
    private_key: str = ""
    offline: bool = False

    def builder_config(self, maker_address: str, fee_rate_bps: int | None = None) -> BuilderConfig:
        return BuilderConfig(
            maker_address=maker_address,
            fee_rate_bps=self.fee_rate_bps if fee_rate_bps is None else fee_rate_bps,
            price_tick=self.price_tick,
            signature_type=SignatureType(self.signature_type),
        )

    def rest_client(self) -> RestClient:
        return RestClient(
            base_url=self.api_base_url,
            timeout=self.rest_timeout,
            rate_per_sec=self.rest_rate_per_sec,
            burst=self.rest_burst,
            retry_max=self.rest_retry_max,
            retry_backoff=self.rest_retry_backoff,
        )

    def venue_ttl(self) -> float | None:
        if self.venue_cache_ttl_seconds and self.venue_cache_ttl_seconds > 0:
            return float(self.venue_cache_ttl_seconds)
        return None

    def apply_overrides(self, overrides: dict[str, Any]) -> "Config":
        for field in fields(self):
            name = field.name
            if name in overrides and overrides[name] is not None:
                setattr(self, name, overrides[name])
        return self

    @classmethod
    def from_env_and_cli(cls, cli_overrides: dict[str, Any], env: dict[str, str]) -> "Config":
        cfg = cls()
        for field in fields(cfg):
            env_key = ENV_PREFIX + field.name.upper()
            if env_key not in env:
                continue
            raw = env[env_key]
            if field.type in {bool, "bool"}:
                value = _parse_bool(raw)
            elif field.type in {int, float, "int", "float"}:
                value = _parse_number(raw, field.type)
            else:
                value = raw
            setattr(cfg, field.name, value)
        return cfg.apply_overrides(cli_overrides)
