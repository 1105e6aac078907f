"""
Upstream Fetcher Module

Blocking HTTP client for the Alpha Vantage time-series API. Returns the raw
response body; responses that signal failure are raised as errors so they
never reach the cache.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from ..config import RateLimitConfig, UpstreamConfig
from ..exceptions import UpstreamError, UpstreamUnavailable
from .granularity import Granularity

logger = logging.getLogger(__name__)

# Extra query parameters per granularity, on top of function/symbol/apikey.
GRANULARITY_PARAMS: dict[Granularity, dict[str, str]] = {
    Granularity.INTRADAY: {"interval": "5min"},
    Granularity.DAILY: {},
    Granularity.WEEKLY: {},
    Granularity.MONTHLY: {},
}

# Top-level keys Alpha Vantage uses for errors delivered with HTTP 200.
PROVIDER_ERROR_KEYS = ("Error Message", "Note", "Information")


def build_query_params(
    granularity: Granularity,
    symbol: str,
    api_key: str,
    intraday_interval: str | None = None,
) -> dict[str, str]:
    """Build the provider query string for one request."""
    params = {"function": granularity.function, "symbol": symbol}
    params.update(GRANULARITY_PARAMS[granularity])
    if intraday_interval and "interval" in params:
        params["interval"] = intraday_interval
    params["apikey"] = api_key
    return params


def find_provider_error(body: str) -> str | None:
    """
    Return the provider's error message if ``body`` is an error payload.

    Only JSON objects carrying one of the known error keys and no series data
    count as errors; anything else is passed through untouched.
    """
    try:
        parsed: Any = json.loads(body)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    if any(key.startswith(("Meta Data", "Time Series")) for key in parsed):
        return None
    for key in PROVIDER_ERROR_KEYS:
        if key in parsed:
            return str(parsed[key])
    return None


class RateLimiter:
    """Sliding one-minute window throttle shared by all calling threads."""

    def __init__(self, config: RateLimitConfig) -> None:
        self.config = config
        self._request_times: list[float] = []
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.requests_per_minute > 0

    def acquire(self) -> None:
        """Acquire permission to make a request, waiting if necessary."""
        if not self.enabled:
            return

        with self._lock:
            now = time.monotonic()
            minute_ago = now - 60

            self._request_times = [t for t in self._request_times if t > minute_ago]

            if len(self._request_times) >= self.config.requests_per_minute:
                oldest = self._request_times[0]
                wait_time = 60 - (now - oldest) + 0.1
                if wait_time > 0:
                    logger.debug(f"Rate limit reached, waiting {wait_time:.2f}s")
                    time.sleep(wait_time)

            self._request_times.append(time.monotonic())


class UpstreamFetcher(ABC):
    """Blocking source of raw time-series payloads."""

    @abstractmethod
    def fetch(self, granularity: Granularity, symbol: str) -> str:
        """
        Fetch the raw payload for one series.

        Raises:
            UpstreamUnavailable: On connect failure or timeout.
            UpstreamError: On a non-success response.
        """

    def close(self) -> None:
        """Release any held resources."""


class AlphaVantageFetcher(UpstreamFetcher):
    """
    Fetcher for the Alpha Vantage ``/query`` endpoint.

    One ``requests.Session`` is shared by every calling thread for connection
    reuse. No retries are attempted; failures surface to the caller.

    Example:
        >>> fetcher = AlphaVantageFetcher()
        >>> body = fetcher.fetch(Granularity.DAILY, "IBM")
    """

    QUERY_PATH = "/query"

    def __init__(
        self,
        config: UpstreamConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Upstream configuration. Defaults to the public endpoint
                with the ``demo`` key and 5s/10s timeouts.
            session: HTTP session to use. One is created when omitted.
        """
        self.config = config or UpstreamConfig()
        self._session = session or self._create_session(self.config.pool_size)
        self._rate_limiter = RateLimiter(self.config.rate_limit)

    @staticmethod
    def _create_session(pool_size: int) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    @property
    def url(self) -> str:
        return self.config.base_url.rstrip("/") + self.QUERY_PATH

    def fetch(self, granularity: Granularity, symbol: str) -> str:
        granularity = Granularity.parse(granularity)
        params = build_query_params(
            granularity,
            symbol,
            api_key=self.config.api_key,
            intraday_interval=self.config.intraday_interval,
        )

        self._rate_limiter.acquire()
        logger.info(f"Requesting {granularity.function} for {symbol} from upstream")
        started = time.perf_counter()

        try:
            response = self._session.get(self.url, params=params, timeout=self.config.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(f"Upstream timeout for {granularity.value} {symbol}: {e}")
            raise UpstreamUnavailable(
                f"Timed out fetching {granularity.value} data for {symbol}",
                url=self.url,
                original_error=e,
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.warning(f"Upstream connection failed for {granularity.value} {symbol}: {e}")
            raise UpstreamUnavailable(
                f"Could not connect to upstream for {granularity.value} data for {symbol}",
                url=self.url,
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Upstream request failed for {granularity.value} {symbol}: {e}")
            raise UpstreamError(
                f"Upstream request failed for {granularity.value} data for {symbol}: {e}"
            ) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"Upstream answered {response.status_code} in {elapsed_ms:.0f}ms")

        if not response.ok:
            logger.warning(
                f"Upstream returned HTTP {response.status_code} for {granularity.value} {symbol}"
            )
            raise UpstreamError(
                f"Upstream returned HTTP {response.status_code} for {granularity.value} data for {symbol}",
                status_code=response.status_code,
                provider_message=response.text[:200] or None,
            )

        body = response.text
        if not body.strip():
            raise UpstreamError(
                f"Upstream returned an empty body for {granularity.value} data for {symbol}",
                status_code=response.status_code,
            )

        provider_message = find_provider_error(body)
        if provider_message is not None:
            logger.warning(f"Upstream error payload for {granularity.value} {symbol}: {provider_message}")
            raise UpstreamError(
                f"Upstream rejected {granularity.value} request for {symbol}",
                status_code=response.status_code,
                provider_message=provider_message,
            )

        return body

    def close(self) -> None:
        self._session.close()
