"""
Stock Data Gateway

A read-through gateway for intraday, daily, weekly and monthly stock
time series with:
- Thread-safe in-memory payload cache
- Single-flight coalescing of concurrent cache misses
- Alpha Vantage upstream client with timeouts and error detection
- FastAPI HTTP surface and click CLI
"""

__version__ = "1.0.0"

from .cache.single_flight import SingleFlight
from .cache.store import CacheStore, ConcurrentStore
from .config import (
    CacheConfig,
    GatewaySettings,
    LoggingConfig,
    RateLimitConfig,
    ServerConfig,
    UpstreamConfig,
    create_default_settings,
)
from .data.gateway import DataGateway
from .data.granularity import Granularity, cache_key
from .data.upstream import AlphaVantageFetcher, UpstreamFetcher
from .exceptions import FetchError, GatewayError, UpstreamError, UpstreamUnavailable

__all__ = [
    # Cache
    "CacheStore",
    "ConcurrentStore",
    "SingleFlight",
    # Data
    "DataGateway",
    "Granularity",
    "cache_key",
    "AlphaVantageFetcher",
    "UpstreamFetcher",
    # Config
    "GatewaySettings",
    "UpstreamConfig",
    "RateLimitConfig",
    "CacheConfig",
    "ServerConfig",
    "LoggingConfig",
    "create_default_settings",
    # Errors
    "GatewayError",
    "FetchError",
    "UpstreamUnavailable",
    "UpstreamError",
]
