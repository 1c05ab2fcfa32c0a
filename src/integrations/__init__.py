"""
Resilient OAuth2 API clients for third-party business integrations.

One shared request pipeline (token refresh, timeouts, error classification,
retries, pagination) behind thin provider adapters for DocuSign, PandaDoc,
HubSpot and QuickBooks.
"""

from integrations.clock import DEFAULT_CLOCK, SystemClock
from integrations.errors import (
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
from integrations.http import ClientSettings, Page, RequestOptions, RequestPipeline, RequestSpec
from integrations.oauth2 import Environment, OAuthConfig, TokenManager, Tokens
from integrations.resilience import RetryPolicy
from integrations.types import ErrorKind

__version__ = "0.1.0"

__all__ = [
    "SystemClock",
    "DEFAULT_CLOCK",
    "ErrorKind",
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
    "ClientSettings",
    "Page",
    "RequestOptions",
    "RequestPipeline",
    "RequestSpec",
    "Environment",
    "OAuthConfig",
    "TokenManager",
    "Tokens",
    "RetryPolicy",
]
