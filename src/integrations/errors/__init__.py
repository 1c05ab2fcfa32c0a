"""
Error classification and exception hierarchy.

Provides:
- ApiError hierarchy (the classified error taxonomy)
- Response and transport classifiers
- ParsedApiError, the shape adapters return from their error-body hook
"""

from integrations.errors.classifiers import (
    DEFAULT_RETRY_AFTER_SECONDS,
    ErrorParser,
    ParsedApiError,
    classify_response,
    classify_transport_error,
    decode_error_body,
    default_parse_api_error,
    parse_retry_after,
)
from integrations.errors.exceptions import (
    ApiError,
    AuthError,
    DocumentNotReadyError,
    IntegrationError,
    InvalidConfigurationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TokenRefreshError,
    TransportError,
    ValidationError,
)

__all__ = [
    # Base classes
    "IntegrationError",
    "InvalidConfigurationError",
    "ApiError",
    # Classified errors
    "ValidationError",
    "AuthError",
    "TokenRefreshError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "DocumentNotReadyError",
    # Classification utilities
    "DEFAULT_RETRY_AFTER_SECONDS",
    "ErrorParser",
    "ParsedApiError",
    "classify_response",
    "classify_transport_error",
    "decode_error_body",
    "default_parse_api_error",
    "parse_retry_after",
]
