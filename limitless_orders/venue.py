from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable

from .errors import VenueError
from .log import get_logger
from .models import Venue

logger = get_logger(__name__)


@dataclass(frozen=True)
class VenueCacheEntry:
    venue: Venue
    expires_at_mono_ns: int | None


class VenueCache:
    """Read-through cache of per-market venues.

    Venues do not change once a market is deployed, so entries live for the
    process lifetime unless ``ttl_seconds`` is set or ``invalidate`` is called.
    """

    def __init__(
        self,
        *,
        fetcher: Callable[[str], dict[str, Any]],
        ttl_seconds: float | None = None,
        monotonic_ns=None,
    ) -> None:
        self._fetcher = fetcher
        self._ttl_ns = int(ttl_seconds * 1_000_000_000) if ttl_seconds else None
        self._monotonic_ns = monotonic_ns or time.perf_counter_ns
        self._cache: dict[str, VenueCacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[Venue]] = {}
        self._cache_hits = 0
        self._cache_misses = 0
        self._fetches = 0

    def stats_snapshot(self) -> dict[str, int]:
        return {
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "fetches": self._fetches,
            "in_flight": len(self._inflight),
            "cache_entries": len(self._cache),
        }

    def get_cached(self, market_slug: str) -> Venue | None:
        entry = self._cache.get(market_slug)
        if entry is None:
            return None
        if entry.expires_at_mono_ns is not None and entry.expires_at_mono_ns <= self._monotonic_ns():
            return None
        return entry.venue

    def store(self, market_slug: str, venue: Venue) -> None:
        expires_at = None
        if self._ttl_ns is not None:
            expires_at = self._monotonic_ns() + self._ttl_ns
        self._cache[market_slug] = VenueCacheEntry(venue=venue, expires_at_mono_ns=expires_at)

    def invalidate(self, market_slug: str | None = None) -> None:
        if market_slug is None:
            self._cache.clear()
        else:
            self._cache.pop(market_slug, None)

    async def resolve_venue(self, market_slug: str) -> Venue:
        venue = self.get_cached(market_slug)
        if venue is not None:
            self._cache_hits += 1
            logger.debug("venue_cache_hit", market_slug=market_slug, exchange=venue.exchange)
            return venue
        self._cache_misses += 1
        logger.debug("venue_cache_miss", market_slug=market_slug)
        task = self._inflight.get(market_slug)
        if task is None:
            task = asyncio.create_task(self._fetch_and_cache(market_slug))
            self._inflight[market_slug] = task
            task.add_done_callback(lambda _done: self._inflight.pop(market_slug, None))
        # a cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    async def _fetch_and_cache(self, market_slug: str) -> Venue:
        self._fetches += 1
        market = await asyncio.to_thread(self._fetcher, market_slug)
        venue = Venue.from_market(market)
        if venue is None:
            logger.warning("venue_missing", market_slug=market_slug)
            raise VenueError(f"market {market_slug} has no venue exchange address")
        self.store(market_slug, venue)
        logger.debug(
            "venue_cached",
            market_slug=market_slug,
            exchange=venue.exchange,
            adapter=venue.adapter,
            cache_entries=len(self._cache),
        )
        return venue
