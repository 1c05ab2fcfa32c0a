"""
OAuth2 token lifecycle.

Components:
    - Tokens / OAuthConfig: Credential value types
    - OAuth2TokenRefresher: Token endpoint client (refresh, code exchange, revoke)
    - TokenManager: Per-client token holder with single-flight refresh
"""

from integrations.oauth2.manager import (
    DEFAULT_REFRESH_BUFFER_SECONDS,
    TokenManager,
    TokenRefreshCallback,
)
from integrations.oauth2.models import Environment, OAuthConfig, Tokens
from integrations.oauth2.refresher import (
    BaseTokenRefresher,
    ClientAuthMethod,
    OAuth2TokenRefresher,
    decode_state,
    encode_state,
    generate_state,
    is_state_fresh,
)

__all__ = [
    "Tokens",
    "OAuthConfig",
    "Environment",
    "BaseTokenRefresher",
    "OAuth2TokenRefresher",
    "ClientAuthMethod",
    "TokenManager",
    "TokenRefreshCallback",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
    "generate_state",
    "encode_state",
    "decode_state",
    "is_state_fresh",
]
