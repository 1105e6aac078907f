"""In-memory payload cache."""

from .single_flight import SingleFlight
from .store import CacheStore, ConcurrentStore

__all__ = [
    "CacheStore",
    "ConcurrentStore",
    "SingleFlight",
]
