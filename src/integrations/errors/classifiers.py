"""
Centralized error classification for provider API calls.

Maps a raw HTTP response (status, headers, body) or a transport exception
into the typed ApiError hierarchy. Classification is a pure function of its
inputs: classifying the same response twice yields identical errors.
"""

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from integrations.errors.exceptions import (
    ApiError,
    AuthError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TokenRefreshError,
    TransportError,
    ValidationError,
)

DEFAULT_RETRY_AFTER_SECONDS = 60.0

# Statuses on a token endpoint that mean the refresh token itself is dead
REAUTH_STATUSES = frozenset({400, 401, 403})

_STATUS_LABELS: dict[int, str] = {
    400: "Bad request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not found",
    409: "Conflict",
    422: "Unprocessable entity",
    429: "Rate limited",
}


@dataclass(frozen=True)
class ParsedApiError:
    """
    Human-readable message and machine code extracted from an error body.

    Attributes:
        message: Provider error message
        code: Provider error code (e.g. QuickBooks "3200", HubSpot category)
        is_auth: True if the body identifies an authentication failure
    """

    message: str
    code: str | None = None
    is_auth: bool = False


ErrorParser = Callable[[Any], ParsedApiError]


def decode_error_body(body: bytes | str | None) -> Any:
    """Decode an error body as JSON when possible, otherwise as text."""
    if body is None:
        return None
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def default_parse_api_error(payload: Any) -> ParsedApiError:
    """Best-effort parser for common OAuth2/REST error shapes."""
    if isinstance(payload, dict):
        message = (
            payload.get("error_description")
            or payload.get("message")
            or payload.get("detail")
            or payload.get("error")
        )
        code = payload.get("errorCode") or payload.get("code") or payload.get("error")
        if message:
            return ParsedApiError(str(message), str(code) if code else None)
    if isinstance(payload, str) and payload.strip():
        return ParsedApiError(payload.strip()[:500])
    return ParsedApiError("")


def parse_retry_after(value: str | None) -> float:
    """
    Parse a Retry-After header given in seconds.

    Returns DEFAULT_RETRY_AFTER_SECONDS when the header is absent or
    unparseable (HTTP-date values included).
    """
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = float(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS
    if seconds < 0:
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds


def _get_header(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def _safe_parse(parse_api_error: ErrorParser | None, payload: Any) -> ParsedApiError:
    if parse_api_error is None:
        return default_parse_api_error(payload)
    try:
        return parse_api_error(payload)
    except (AttributeError, IndexError, KeyError, TypeError, ValueError):
        # Body did not match the provider's documented error shape
        return default_parse_api_error(payload)


def classify_response(
    status: int,
    headers: Mapping[str, str] | None = None,
    body: bytes | str | None = None,
    *,
    provider: str | None = None,
    token_exchange: bool = False,
    parse_api_error: ErrorParser | None = None,
) -> ApiError:
    """
    Classify a non-2xx HTTP response into an ApiError subclass.

    Args:
        status: HTTP status code
        headers: Response headers (case-insensitive lookup)
        body: Raw response body
        provider: Provider name recorded on the error
        token_exchange: True if the response came from an OAuth token endpoint
        parse_api_error: Adapter hook extracting message/code from the body

    Returns:
        Classified ApiError (never raised here)
    """
    payload = decode_error_body(body)
    parsed = _safe_parse(parse_api_error, payload)
    label = _STATUS_LABELS.get(status, f"HTTP {status}")
    message = f"{label}: {parsed.message}" if parsed.message else label
    common = {
        "http_status": status,
        "provider_error_code": parsed.code,
        "provider": provider,
        "details": payload,
    }

    if token_exchange:
        if status in REAUTH_STATUSES:
            return TokenRefreshError(
                f"Refresh token is invalid or expired: {parsed.message or label}",
                requires_reauthorization=True,
                **common,
            )
        return TokenRefreshError(
            f"Token endpoint failure: {message}",
            requires_reauthorization=False,
            **common,
        )

    if status == 429:
        retry_after = parse_retry_after(_get_header(headers, "Retry-After"))
        return RateLimitError(
            f"Rate limited, retry after {retry_after:g}s",
            retry_after_seconds=retry_after,
            **common,
        )

    if status == 401:
        return AuthError(message, **common)

    if status == 403:
        return AuthError(message, forbidden=True, **common)

    if status == 400:
        if parsed.is_auth:
            return AuthError(message, **common)
        return ValidationError(message, **common)

    if status == 404:
        return NotFoundError(message, **common)

    if 500 <= status <= 599:
        return ServerError(f"Server error ({status}): {parsed.message}".rstrip(": "), **common)

    # Fallback: remaining 4xx are caller errors, anything else is unexpected
    if 400 <= status < 500:
        return ValidationError(message, **common)

    return ServerError(f"Unexpected HTTP status {status}", **common)


def classify_transport_error(
    error: BaseException,
    *,
    provider: str | None = None,
    timeout_seconds: float | None = None,
    url: str | None = None,
) -> TransportError:
    """
    Classify a network-level exception raised while issuing a request.

    Args:
        error: Exception raised by aiohttp or asyncio
        provider: Provider name recorded on the error
        timeout_seconds: Timeout in effect, used in the message
        url: Request URL, used in the message

    Returns:
        TransportError (never raised here)
    """
    target = f": {url}" if url else ""

    if isinstance(error, TransportError):
        return error

    if isinstance(error, (TimeoutError, aiohttp.ServerTimeoutError)):
        limit = f" after {timeout_seconds:g}s" if timeout_seconds is not None else ""
        return TransportError(
            f"Timeout{limit}{target}",
            timed_out=True,
            provider=provider,
            cause=error if isinstance(error, Exception) else None,
        )

    if isinstance(error, aiohttp.ClientError):
        return TransportError(
            f"Connection error{target}: {error}",
            provider=provider,
            cause=error,
        )

    return TransportError(
        f"Transport failure{target}: {error}",
        provider=provider,
        cause=error if isinstance(error, Exception) else None,
    )


__all__ = [
    "DEFAULT_RETRY_AFTER_SECONDS",
    "ParsedApiError",
    "ErrorParser",
    "decode_error_body",
    "default_parse_api_error",
    "parse_retry_after",
    "classify_response",
    "classify_transport_error",
]
