"""
Data Gateway Module

Read-through cache in front of the upstream time-series provider.

Flow for every request:
1. Build the cache key, e.g. ``DAILY_IBM``
2. Cache hit: return the stored payload
3. Cache miss: join or start the single in-flight upstream call for the key
4. Store the fresh payload, then return it

Failed upstream calls are never cached.
"""

from __future__ import annotations

import logging

from ..cache.single_flight import SingleFlight
from ..cache.store import CacheStore, ConcurrentStore
from ..config import CacheConfig
from .granularity import Granularity, cache_key
from .upstream import UpstreamFetcher

logger = logging.getLogger(__name__)


class DataGateway:
    """
    Cache-aside gateway for intraday, daily, weekly and monthly series.

    The gateway owns its store for its whole lifetime; pass one in to share or
    inspect it. Concurrent misses on one key result in a single upstream call
    unless ``CacheConfig.coalesce_requests`` is disabled.

    Example:
        >>> gateway = DataGateway(AlphaVantageFetcher())
        >>> payload = gateway.fetch("daily", "IBM")
    """

    def __init__(
        self,
        upstream: UpstreamFetcher,
        store: CacheStore | None = None,
        cache_config: CacheConfig | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            upstream: Source of raw payloads on cache misses.
            store: Payload store. A fresh ConcurrentStore when omitted.
            cache_config: Cache behaviour. Defaults to coalescing enabled.

        Raises:
            TypeError: If the store lacks part of the CacheStore interface.
        """
        self.upstream = upstream
        self.store = store if store is not None else ConcurrentStore()
        if not isinstance(self.store, CacheStore):
            raise TypeError(f"{type(self.store).__name__} does not implement CacheStore")
        self.cache_config = cache_config or CacheConfig()
        self._flight = SingleFlight()

    def fetch(self, granularity: Granularity | str, symbol: str) -> str:
        """
        Return the raw payload for a series, from cache or upstream.

        Args:
            granularity: Series granularity, member or case-insensitive name.
            symbol: Ticker symbol, forwarded upstream as given.

        Returns:
            Raw provider payload.

        Raises:
            ValueError: If the granularity is unknown.
            UpstreamUnavailable: If the provider could not be reached.
            UpstreamError: If the provider answered with an error.
        """
        granularity = Granularity.parse(granularity)
        key = cache_key(granularity, symbol)

        cached = self.store.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
            return cached

        if not self.cache_config.coalesce_requests:
            logger.info(f"Cache MISS: {key}")
            return self._load(key, granularity, symbol)

        payload, shared = self._flight.do(key, lambda: self._load_once(key, granularity, symbol))
        if shared:
            logger.debug(f"Shared in-flight result for {key}")
        return payload

    def _load_once(self, key: str, granularity: Granularity, symbol: str) -> str:
        # A previous leader may have stored the key after our first lookup.
        cached = self.store.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
            return cached
        logger.info(f"Cache MISS: {key}")
        return self._load(key, granularity, symbol)

    def _load(self, key: str, granularity: Granularity, symbol: str) -> str:
        payload = self.upstream.fetch(granularity, symbol)
        self.store.put(key, payload)
        return payload

    def get_intraday_data(self, symbol: str) -> str:
        """Intraday series at the configured interval."""
        return self.fetch(Granularity.INTRADAY, symbol)

    def get_daily_data(self, symbol: str) -> str:
        """Daily series."""
        return self.fetch(Granularity.DAILY, symbol)

    def get_weekly_data(self, symbol: str) -> str:
        """Weekly series."""
        return self.fetch(Granularity.WEEKLY, symbol)

    def get_monthly_data(self, symbol: str) -> str:
        """Monthly series."""
        return self.fetch(Granularity.MONTHLY, symbol)

    def is_cached(self, granularity: Granularity | str, symbol: str) -> bool:
        """Check whether a series is currently cached."""
        return self.store.contains_key(cache_key(granularity, symbol))

    def cache_size(self) -> int:
        """Advisory number of cached series."""
        return self.store.size()

    def clear_cache(self) -> int:
        """
        Drop every cached series.

        Returns:
            Number of entries removed.
        """
        return self.store.clear()

    def close(self) -> None:
        """Release upstream resources."""
        self.upstream.close()
