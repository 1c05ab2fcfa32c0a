"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the integrations package to ensure consistency and type safety.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Protocol


class ErrorKind(Enum):
    """
    Classification of API failures for handling decisions.

    Kinds:
        VALIDATION: Caller/input error, surfaced verbatim (never retried)
        AUTH: Unauthorized, forbidden, or a dead refresh token (never retried)
        NOT_FOUND: Resource does not exist (never retried)
        RATE_LIMIT: Provider throttled the call, retry after its delay
        SERVER: Provider 5xx, retry with backoff
        TRANSPORT: DNS, connection, timeout or cancellation failure
        UNKNOWN: Unclassified error (local failures, never retried)
    """

    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.SERVER, ErrorKind.TRANSPORT})


class Clock(Protocol):
    """
    Protocol for wall-clock time and interruptible delays.

    Production code uses SystemClock; tests substitute a fake that records
    requested sleeps and advances time instantly.
    """

    def now(self) -> datetime:
        """Return the current UTC time (timezone-aware)."""
        ...

    async def sleep(self, seconds: float, cancel_event: asyncio.Event | None = None) -> bool:
        """
        Wait for the given delay.

        Args:
            seconds: Delay in seconds
            cancel_event: Optional event that interrupts the wait when set

        Returns:
            True if the full delay elapsed, False if interrupted by cancel_event
        """
        ...


class ProviderRouting(Protocol):
    """
    Protocol for the provider-specific parts of a request.

    Implemented by ProviderAdapter; consumed by RequestPipeline so that the
    pipeline never needs to know which provider it is talking to.
    """

    provider_name: str

    def base_url(self) -> str:
        """Base URL (including version and account/realm routing) for resource calls."""
        ...

    def authorization_header(self) -> str:
        """Value of the Authorization header for the current credentials."""
        ...

    def parse_api_error(self, payload: Any) -> Any:
        """Extract a ParsedApiError from a provider error body."""
        ...


__all__ = [
    "ErrorKind",
    "RETRYABLE_KINDS",
    "Clock",
    "ProviderRouting",
]
