"""
Pytest configuration and fixtures for the stock data gateway tests.

This module provides reusable fixtures for:
- Stub upstream fetchers that count invocations
- Fresh stores and gateways
- Sample provider payloads (series data and error payloads)
- Mock HTTP sessions and responses
"""

import json
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock

import pytest
import requests

from stockgateway.cache.store import ConcurrentStore
from stockgateway.config import CacheConfig
from stockgateway.data.gateway import DataGateway
from stockgateway.data.granularity import Granularity
from stockgateway.data.upstream import UpstreamFetcher


# =============================================================================
# Environment
# =============================================================================

@pytest.fixture(autouse=True)
def clean_api_key_env(monkeypatch):
    """Keep a real API key in the environment from leaking into tests."""
    monkeypatch.delenv("ALPHAVANTAGE_APIKEY", raising=False)


# =============================================================================
# Stub Upstream
# =============================================================================

class CountingUpstream(UpstreamFetcher):
    """
    Thread-safe stub upstream that records every call.

    Args:
        payloads: Fixed payloads keyed by (granularity, symbol).
        delay: Seconds each call blocks, to widen race windows.
        error: Exception raised by failing calls.
        fail_times: Number of leading calls that raise ``error``.
            Negative means every call fails.
    """

    def __init__(
        self,
        payloads: Optional[Dict[Tuple[Granularity, str], str]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        fail_times: int = -1,
    ) -> None:
        self.payloads = payloads or {}
        self.delay = delay
        self.error = error
        self.fail_times = fail_times
        self.calls = 0
        self.requests: List[Tuple[Granularity, str]] = []
        self.returned: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch(self, granularity: Granularity, symbol: str) -> str:
        with self._lock:
            self.calls += 1
            call_number = self.calls
            self.requests.append((granularity, symbol))

        if self.delay:
            time.sleep(self.delay)

        if self.error is not None and (self.fail_times < 0 or call_number <= self.fail_times):
            raise self.error

        payload = self.payloads.get(
            (granularity, symbol),
            json.dumps({"symbol": symbol, "granularity": granularity.value, "call": call_number}),
        )
        with self._lock:
            self.returned.append(payload)
        return payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def counting_upstream() -> CountingUpstream:
    """Stub upstream answering instantly with a per-call payload."""
    return CountingUpstream()


@pytest.fixture
def slow_upstream() -> CountingUpstream:
    """Stub upstream that blocks for 200ms per call."""
    return CountingUpstream(delay=0.2)


# =============================================================================
# Store and Gateway Fixtures
# =============================================================================

class DictStore:
    """Plain dict-backed store with no locking."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.data.get(key, default)

    def put(self, key: str, value: str) -> None:
        self.data[key] = value

    def contains_key(self, key: str) -> bool:
        return key in self.data

    def size(self) -> int:
        return len(self.data)

    def clear(self) -> int:
        removed = len(self.data)
        self.data.clear()
        return removed


@pytest.fixture
def store() -> ConcurrentStore:
    """Fresh empty store."""
    return ConcurrentStore()


@pytest.fixture
def gateway(counting_upstream, store) -> DataGateway:
    """Gateway over the counting upstream with coalescing enabled."""
    return DataGateway(counting_upstream, store=store)


@pytest.fixture
def naive_gateway(slow_upstream) -> DataGateway:
    """Gateway with coalescing disabled (plain check-then-act)."""
    return DataGateway(slow_upstream, cache_config=CacheConfig(coalesce_requests=False))


# =============================================================================
# Provider Payload Fixtures
# =============================================================================

@pytest.fixture
def daily_series_payload() -> str:
    """Trimmed TIME_SERIES_DAILY response for IBM."""
    return json.dumps({
        "Meta Data": {
            "1. Information": "Daily Prices (open, high, low, close) and Volumes",
            "2. Symbol": "IBM",
            "3. Last Refreshed": "2025-01-15",
            "4. Output Size": "Compact",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily)": {
            "2025-01-15": {
                "1. open": "150.00",
                "2. high": "151.00",
                "3. low": "149.50",
                "4. close": "150.75",
                "5. volume": "1000000",
            },
        },
    })


@pytest.fixture
def mock_api_error_payload() -> str:
    """Provider error for an unknown symbol (delivered with HTTP 200)."""
    return json.dumps({
        "Error Message": "Invalid API call. Please retry or visit the documentation "
                         "(https://www.alphavantage.co/documentation/) for TIME_SERIES_DAILY."
    })


@pytest.fixture
def mock_rate_limit_payload() -> str:
    """Provider rate limit notice (delivered with HTTP 200)."""
    return json.dumps({
        "Note": "Thank you for using Alpha Vantage! Our standard API call frequency "
                "is 5 calls per minute and 500 calls per day."
    })


# =============================================================================
# HTTP Mocks
# =============================================================================

def make_response(text: str = "", status_code: int = 200) -> Mock:
    """Build a mock ``requests.Response``."""
    response = Mock(spec=requests.Response)
    response.text = text
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    return response


@pytest.fixture
def mock_session() -> Mock:
    """Mock ``requests.Session`` answering with an empty 200 by default."""
    session = Mock(spec=requests.Session)
    session.get.return_value = make_response()
    return session


@pytest.fixture
def response_factory():
    """Return the mock response builder."""
    return make_response
