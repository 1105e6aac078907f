"""
Gateway Exceptions

Errors raised while fetching time-series data from the upstream provider.
Cache operations never raise; every failure here originates upstream.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class FetchError(GatewayError):
    """Raised when the upstream fetch for a symbol fails."""


class UpstreamUnavailable(FetchError):
    """Raised on connect failures and timeouts talking to the provider."""

    def __init__(
        self,
        message: str = "Upstream provider unavailable",
        url: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if url:
            details["url"] = url
        if original_error is not None:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="UPSTREAM_UNAVAILABLE", details=details
        )


class UpstreamError(FetchError):
    """Raised when the provider answers with a non-success status or an error payload."""

    def __init__(
        self,
        message: str = "Upstream provider returned an error",
        status_code: int | None = None,
        provider_message: str | None = None,
    ) -> None:
        self.status_code = status_code
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if provider_message:
            details["provider_message"] = provider_message

        super().__init__(message=message, error_code="UPSTREAM_ERROR", details=details)


__all__ = ["GatewayError", "FetchError", "UpstreamUnavailable", "UpstreamError"]
