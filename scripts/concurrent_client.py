#!/usr/bin/env python3
"""
Concurrent Load Client for the Stock Data Gateway

Fires a batch of requests at a running gateway from a thread pool, rotating
through symbols and granularities, and reports per-request latency. First
requests for each series should be slow (cache MISS, upstream round-trip);
the rest should be fast (cache HIT).

Usage:
    stockgateway serve --port 8080 &
    python scripts/concurrent_client.py --requests 20 --threads 20

Requirements:
    - requests
    - pandas

Output:
    - One line per request with status code, latency and HIT/MISS guess
    - Latency summary per symbol and granularity
"""

from __future__ import annotations

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass

import pandas as pd
import requests

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

BASE_URL = "http://localhost:8080/api/stocks"
SYMBOLS = ["IBM", "MSFT", "AAPL"]
GRANULARITIES = ["daily", "weekly", "monthly"]

# Responses faster than this are assumed to be served from cache.
HIT_THRESHOLD_MS = 100.0

SUMMARY_COLUMNS = ["requests", "misses", "errors", "mean_ms", "max_ms"]


@dataclass
class RequestResult:
    """Outcome of a single gateway request."""

    request_number: int
    symbol: str
    granularity: str
    status_code: int | None
    duration_ms: float
    error: str | None = None

    @property
    def cache_status(self) -> str:
        return "HIT" if self.duration_ms < HIT_THRESHOLD_MS else "MISS"


def make_request(
    session: requests.Session,
    base_url: str,
    request_number: int,
    symbol: str,
    granularity: str,
) -> RequestResult:
    """Issue one GET and time it."""
    url = f"{base_url}/{symbol}/{granularity}"
    start = time.perf_counter()
    try:
        response = session.get(url, timeout=(5, 10))
        # Read the full body, as a real client would
        _ = response.content
        status_code: int | None = response.status_code
        error = None if response.ok else response.text[:120]
    except requests.exceptions.RequestException as e:
        status_code = None
        error = str(e)
    duration_ms = (time.perf_counter() - start) * 1000

    return RequestResult(
        request_number=request_number,
        symbol=symbol,
        granularity=granularity,
        status_code=status_code,
        duration_ms=duration_ms,
        error=error,
    )


def run(base_url: str, total_requests: int, threads: int) -> list[RequestResult]:
    """Submit all requests to a thread pool and collect the results."""
    results: list[RequestResult] = []
    session = requests.Session()

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [
            executor.submit(
                make_request,
                session,
                base_url,
                i + 1,
                SYMBOLS[i % len(SYMBOLS)],
                GRANULARITIES[i % len(GRANULARITIES)],
            )
            for i in range(total_requests)
        ]
        for future in as_completed(futures):
            result = future.result()
            results.append(result)
            if result.error:
                logger.error(
                    f"Request #{result.request_number:02d} | {result.symbol} | "
                    f"{result.granularity} | ERROR: {result.error}"
                )
            else:
                logger.info(
                    f"Request #{result.request_number:02d} | {result.symbol:<5} | "
                    f"{result.granularity:<7} | {result.status_code} | "
                    f"{result.duration_ms:6.0f}ms | {result.cache_status}"
                )

    session.close()
    return results


def summarize(results: list[RequestResult]) -> pd.DataFrame:
    """Latency statistics per symbol and granularity."""
    if not results:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    df = pd.DataFrame([{**asdict(r), "cache_status": r.cache_status} for r in results])
    return (
        df.groupby(["symbol", "granularity"])
        .agg(
            requests=("request_number", "count"),
            misses=("cache_status", lambda s: int((s == "MISS").sum())),
            errors=("error", lambda s: int(s.notna().sum())),
            mean_ms=("duration_ms", "mean"),
            max_ms=("duration_ms", "max"),
        )
        .round(1)
    )


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def main() -> int:
    """
    Main entry point for the load client.

    Returns:
        Exit code (0 when every request succeeded, 1 otherwise)
    """
    parser = argparse.ArgumentParser(description="Concurrent load client for the gateway")
    parser.add_argument("--url", default=BASE_URL, help="Base URL of the stocks API")
    parser.add_argument("--requests", type=positive_int, default=20, help="Total number of requests")
    parser.add_argument("--threads", type=positive_int, default=20, help="Thread pool size")
    args = parser.parse_args()

    print("=" * 70)
    print("STOCK DATA GATEWAY - CONCURRENT CLIENT")
    print("=" * 70)
    print(f"  URL:         {args.url}")
    print(f"  Threads:     {args.threads}")
    print(f"  Requests:    {args.requests}")
    print(f"  Symbols:     {', '.join(SYMBOLS)}")
    print()

    start = time.perf_counter()
    results = run(args.url, args.requests, args.threads)
    total_ms = (time.perf_counter() - start) * 1000

    print("-" * 70)
    print(f"Total time:            {total_ms:.0f}ms")
    print(f"Average per request:   {total_ms / max(len(results), 1):.0f}ms")
    print()
    print(summarize(results).to_string())
    print("=" * 70)

    return 1 if any(r.error for r in results) else 0


if __name__ == "__main__":
    raise SystemExit(main())
