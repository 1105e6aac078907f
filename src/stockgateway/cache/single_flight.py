"""
Single-flight call coalescing.

Concurrent callers asking for the same key share one execution of the
loader: the first caller runs it, the rest wait on the same future and
receive its result or its exception.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Per-key in-flight call table."""

    def __init__(self) -> None:
        self._inflight: dict[str, Future] = {}
        self._lock = threading.Lock()

    def do(self, key: str, loader: Callable[[], T]) -> tuple[T, bool]:
        """
        Run ``loader`` once for all concurrent callers of ``key``.

        Args:
            key: Coalescing key.
            loader: Zero-argument callable producing the value.

        Returns:
            Tuple of (value, shared) where ``shared`` is True when the caller
            waited on another caller's execution.

        Raises:
            Exception: Whatever ``loader`` raised, re-raised in every waiter.
        """
        with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug(f"Joining in-flight call for {key}")
            return future.result(), True

        try:
            value = loader()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(value)
            return value, False
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    def in_flight(self) -> list[str]:
        """Keys with a call currently running."""
        with self._lock:
            return list(self._inflight)
