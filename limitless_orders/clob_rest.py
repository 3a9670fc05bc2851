from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import requests

from .errors import (
    APIError,
    APIValidationError,
    AuthenticationError,
    RateLimitError,
    RestConnectionError,
    RestError,
)
from .log import get_logger

DEFAULT_API_URL = "https://api.limitless.exchange"
DEFAULT_USER_AGENT = "limitless-orders-py/0.1"
SESSION_COOKIE = "limitless_session"

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class RestRateLimiter:
    rate_per_sec: int
    burst: int
    tokens: float = 0.0
    last_ts: float = 0.0

    def allow(self) -> None:
        now = time.time()
        if self.last_ts == 0.0:
            self.last_ts = now
            self.tokens = float(self.burst)
        elapsed = max(0.0, now - self.last_ts)
        self.tokens = min(self.burst, self.tokens + elapsed * self.rate_per_sec)
        self.last_ts = now
        if self.tokens < 1.0:
            sleep_for = (1.0 - self.tokens) / max(self.rate_per_sec, 1)
            time.sleep(sleep_for)
            self.tokens = 0.0
            self.last_ts = time.time()
        else:
            self.tokens -= 1.0


def _error_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, list):
            parts = []
            for item in message:
                if isinstance(item, dict):
                    details = ", ".join(
                        f"{key}: {val}" for key, val in item.items() if val not in ("", None)
                    )
                    parts.append(details or json.dumps(item))
                elif str(item).strip():
                    parts.append(str(item))
            return " | ".join(parts) or str(data.get("error") or json.dumps(data))
        if message:
            return str(message)
        for key in ("error", "msg"):
            if data.get(key):
                return str(data[key])
        if data.get("errors"):
            return json.dumps(data["errors"])
        return json.dumps(data)
    if data:
        return str(data)
    return fallback


def _api_error(resp: requests.Response, method: str) -> APIError:
    try:
        data = resp.json()
    except ValueError:
        data = resp.text
    status = resp.status_code
    message = _error_message(data, f"HTTP {status}")
    if status == 429:
        cls = RateLimitError
    elif status in {401, 403}:
        cls = AuthenticationError
    elif status == 400:
        cls = APIValidationError
    else:
        cls = APIError
    return cls(message, status, data, url=resp.url, method=method)


def is_transient(exc: Exception) -> bool:
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, APIError):
        return exc.status >= 500
    return isinstance(exc, RestConnectionError)


def with_retries(
    fn: Callable[[], T],
    retry_max: int,
    backoff_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Retry transient failures (429, 5xx, connection errors) with exponential backoff."""
    attempts = max(1, retry_max)
    for attempt in range(attempts):
        try:
            return fn()
        except RestError as exc:
            if not is_transient(exc) or attempt == attempts - 1:
                raise
            delay = backoff_seconds * (2**attempt)
            logger.warning(
                "rest_retry",
                attempt=attempt + 1,
                retry_max=attempts,
                delay=delay,
                error=str(exc),
            )
            sleep(delay)
    raise RestError("unreachable")


class RestClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        rate_per_sec: int = 10,
        burst: int = 20,
        *,
        retry_max: int = 3,
        retry_backoff: float = 0.5,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limiter = RestRateLimiter(rate_per_sec=rate_per_sec, burst=burst)
        self.retry_max = retry_max
        self.retry_backoff = retry_backoff
        self.session = session or requests.Session()
        self.session_cookie: str | None = None

    def close(self) -> None:
        self.session.close()

    def set_session_cookie(self, cookie: str | None) -> None:
        self.session_cookie = cookie

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": DEFAULT_USER_AGENT,
        }
        if self.session_cookie:
            headers["Cookie"] = f"{SESSION_COOKIE}={self.session_cookie}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        self.limiter.allow()
        url = f"{self.base_url}{path}"
        logger.debug("rest_request", method=method, url=url)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RestConnectionError(f"{method} {url} failed: {exc}") from exc
        if resp.status_code >= 400:
            error = _api_error(resp, method)
            logger.debug("rest_error", method=method, url=url, status=resp.status_code)
            raise error
        return resp

    def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.request(method, path, **kwargs)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def _get_with_retries(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return with_retries(
            lambda: self._json("GET", path, params=params),
            self.retry_max,
            self.retry_backoff,
        )

    def get_market(self, slug: str) -> dict[str, Any]:
        data = self._get_with_retries(f"/markets/{slug}")
        if not isinstance(data, dict):
            raise ValueError(f"unexpected market response shape for {slug}")
        return data

    def get_orderbook(self, slug: str) -> dict[str, Any]:
        data = self._get_with_retries(f"/markets/{slug}/orderbook")
        if not isinstance(data, dict):
            raise ValueError(f"unexpected orderbook response shape for {slug}")
        return data

    def get_active_markets(
        self,
        *,
        limit: int | None = None,
        page: int | None = None,
        sort_by: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if limit is not None:
            params["limit"] = limit
        if page is not None:
            params["page"] = page
        if sort_by:
            params["sortBy"] = sort_by
        return self._get_with_retries("/markets/active", params=params or None)

    def submit_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        # never retried: a resubmission could place the order twice
        data = self._json("POST", "/orders", json_body=payload)
        if not isinstance(data, dict) or not isinstance(data.get("order"), dict):
            raise ValueError("unexpected order submission response shape")
        return data

    def get_order(self, order_id: str) -> dict[str, Any]:
        return self._get_with_retries(f"/orders/{order_id}")

    def cancel_order(self, order_id: str) -> dict[str, Any]:
        return self._json("DELETE", f"/orders/{order_id}")

    def cancel_all(self, market_slug: str) -> dict[str, Any]:
        return self._json("DELETE", f"/orders/all/{market_slug}")

    def get_signing_message(self) -> str:
        resp = with_retries(
            lambda: self.request("GET", "/auth/signing-message"),
            self.retry_max,
            self.retry_backoff,
        )
        message = resp.text.strip()
        if message.startswith('"') and message.endswith('"'):
            message = json.loads(message)
        if not message:
            raise RestError("empty signing message")
        return message

    def login(self, headers: dict[str, str], body: dict[str, Any]) -> requests.Response:
        return self.request("POST", "/auth/login", json_body=body, headers=headers)

    def verify_auth(self) -> str:
        return str(self._json("GET", "/auth/verify-auth"))

    def logout(self) -> None:
        self._json("POST", "/auth/logout", json_body={})
        self.session_cookie = None
