"""
Unified exception hierarchy for provider integrations.

Provides typed exceptions with retry classification so that callers can
decide between re-connecting the integration, surfacing a validation
message, or re-running the surrounding business operation later.
"""

from typing import Any

from integrations.types import RETRYABLE_KINDS, ErrorKind


class IntegrationError(Exception):
    """
    Base exception for all integration errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return self.category

    @property
    def is_retryable(self) -> bool:
        return self.category in RETRYABLE_KINDS

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class InvalidConfigurationError(IntegrationError):
    """Client or OAuth configuration is incomplete (missing credentials or routing)."""

    pass


# =============================================================================
# Classified API Errors
# =============================================================================


class ApiError(IntegrationError):
    """
    A classified failure of a provider API call.

    Attributes:
        http_status: HTTP status code, None for transport failures
        provider_error_code: Machine-readable code extracted from the error body
        provider: Name of the provider that produced the error
        details: Parsed error body (dict/list/str) for diagnostics
    """

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        provider_error_code: str | None = None,
        provider: str | None = None,
        details: Any = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.http_status = http_status
        self.provider_error_code = provider_error_code
        self.provider = provider
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured classification, suitable for logging or comparison."""
        return {
            "kind": self.kind.value,
            "http_status": self.http_status,
            "provider_error_code": self.provider_error_code,
            "provider": self.provider,
            "message": self.message,
        }


class ValidationError(ApiError):
    """Request rejected as invalid (400/422 and other non-auth 4xx)."""

    category = ErrorKind.VALIDATION


class AuthError(ApiError):
    """
    Authentication or authorization failure.

    requires_reauthorization is True only when the refresh token itself is
    dead and a human must redo the OAuth consent flow. forbidden marks a
    valid token lacking permission/scope (403).
    """

    category = ErrorKind.AUTH

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        provider_error_code: str | None = None,
        provider: str | None = None,
        details: Any = None,
        requires_reauthorization: bool = False,
        forbidden: bool = False,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(
            message,
            http_status=http_status,
            provider_error_code=provider_error_code,
            provider=provider,
            details=details,
            cause=cause,
            context=context,
        )
        self.requires_reauthorization = requires_reauthorization
        self.forbidden = forbidden

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["requires_reauthorization"] = self.requires_reauthorization
        data["forbidden"] = self.forbidden
        return data


class TokenRefreshError(AuthError):
    """
    Token endpoint exchange failed.

    Transient (requires_reauthorization=False) for network blips and 5xx on
    the token endpoint; terminal when the provider rejected the refresh token.
    """

    pass


class NotFoundError(ApiError):
    """Resource not found (404)."""

    category = ErrorKind.NOT_FOUND


class RateLimitError(ApiError):
    """Rate limited (429) - retry after the provider-specified delay."""

    category = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        retry_after_seconds: float,
        http_status: int | None = 429,
        provider_error_code: str | None = None,
        provider: str | None = None,
        details: Any = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(
            message,
            http_status=http_status,
            provider_error_code=provider_error_code,
            provider=provider,
            details=details,
            cause=cause,
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class ServerError(ApiError):
    """Provider-side failure (5xx)."""

    category = ErrorKind.SERVER


class TransportError(ApiError):
    """
    Network-level failure: DNS, connection refused/reset, timeout, cancellation.

    A cancelled request is terminal; it is never retried.
    """

    category = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        timed_out: bool = False,
        cancelled: bool = False,
        provider: str | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, provider=provider, cause=cause, context=context)
        self.timed_out = timed_out
        self.cancelled = cancelled

    @property
    def is_retryable(self) -> bool:
        return not self.cancelled

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timed_out"] = self.timed_out
        data["cancelled"] = self.cancelled
        return data


# =============================================================================
# Adapter-level Errors
# =============================================================================


class DocumentNotReadyError(IntegrationError):
    """Document is still being processed by the provider (HTTP 202)."""

    def __init__(self, document_id: str, cause: Exception | None = None):
        super().__init__(
            f"Document {document_id} is not ready yet, it may still be processing",
            cause,
            {"document_id": document_id},
        )
        self.document_id = document_id


__all__ = [
    "IntegrationError",
    "InvalidConfigurationError",
    "ApiError",
    "ValidationError",
    "AuthError",
    "TokenRefreshError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "DocumentNotReadyError",
]
