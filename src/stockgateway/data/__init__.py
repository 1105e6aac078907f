"""Data fetching and caching module."""

from .gateway import DataGateway
from .granularity import Granularity, cache_key
from .upstream import AlphaVantageFetcher, RateLimiter, UpstreamFetcher

__all__ = [
    "DataGateway",
    "Granularity",
    "cache_key",
    "AlphaVantageFetcher",
    "RateLimiter",
    "UpstreamFetcher",
]
