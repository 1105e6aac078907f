"""
Concurrent Store Module

Thread-safe in-memory key/value store for raw provider payloads.
Reads never block; writers serialize on a single lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheStore(Protocol):
    """Capability the gateway needs from a payload store."""

    def get(self, key: str, default: str | None = None) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def contains_key(self, key: str) -> bool: ...

    def size(self) -> int: ...

    def clear(self) -> int: ...


class ConcurrentStore:
    """
    In-memory payload store safe for concurrent readers and writers.

    Entries never expire. A ``put`` on an existing key overwrites it; when two
    writers race on one key, one of the values is final for every later read.

    Example:
        >>> store = ConcurrentStore()
        >>> store.put("DAILY_IBM", '{"Meta Data": {}}')
        >>> store.get("DAILY_IBM")
        '{"Meta Data": {}}'
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the stored payload for ``key`` or ``default`` when absent."""
        # Single dict lookups are atomic, so readers skip the lock.
        return self._data.get(key, default)

    def put(self, key: str, value: str) -> None:
        """Insert or overwrite the payload for ``key``."""
        with self._lock:
            self._data[key] = value

    def contains_key(self, key: str) -> bool:
        """Check whether ``key`` is currently stored."""
        return key in self._data

    def clear(self) -> int:
        """
        Remove every entry.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            removed = len(self._data)
            self._data.clear()
        logger.info(f"Cleared {removed} cache entries")
        return removed

    def size(self) -> int:
        """Advisory entry count."""
        return len(self._data)

    def keys(self) -> list[str]:
        """Advisory snapshot of the stored keys."""
        with self._lock:
            return list(self._data)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return key in self._data
