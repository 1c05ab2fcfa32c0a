"""
OAuth2 token endpoint clients.

A refresher performs single token-endpoint exchanges (refresh_token or
authorization_code grant) and turns the response into Tokens. It never
retries: a failed exchange surfaces as TokenRefreshError, terminal when the
provider rejected the refresh token and transient otherwise.
"""

import base64
import json
import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import aiohttp

from integrations.clock import DEFAULT_CLOCK
from integrations.errors.classifiers import ErrorParser, classify_response
from integrations.errors.exceptions import InvalidConfigurationError, TokenRefreshError
from integrations.oauth2.models import DEFAULT_EXPIRES_IN_SECONDS, Environment, OAuthConfig, Tokens
from integrations.types import Clock

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TIMEOUT_SECONDS = 30.0

# Environment-specific endpoints are given either as one URL or per environment
EndpointUrl = str | Mapping[Environment, str]


class ClientAuthMethod(Enum):
    """How client credentials are presented to the token endpoint."""

    BASIC = "basic"  # HTTP Basic header
    BODY = "body"  # client_id / client_secret form fields


class BaseTokenRefresher(ABC):
    """
    Abstract base class for token refreshers.

    Implementations exchange a refresh token for new Tokens using the
    provider's token endpoint request shape.
    """

    def __init__(self, provider_name: str):
        self.provider_name = provider_name

    @abstractmethod
    async def refresh(
        self,
        config: OAuthConfig,
        refresh_token: str,
        routing: Mapping[str, str] | None = None,
    ) -> Tokens:
        """
        Exchange a refresh token for new Tokens.

        Raises:
            TokenRefreshError: requires_reauthorization=True when the provider
                rejected the refresh token, False for transient failures
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the refresher."""
        return None


class OAuth2TokenRefresher(BaseTokenRefresher):
    """
    Refresher for standard form-encoded OAuth2 token endpoints.

    Also provides the authorization-code building blocks used by connect
    flows: authorization_url, exchange_code, revoke.
    """

    def __init__(
        self,
        provider_name: str,
        token_url: EndpointUrl,
        *,
        auth_method: ClientAuthMethod = ClientAuthMethod.BODY,
        authorize_url: EndpointUrl | None = None,
        revoke_url: EndpointUrl | None = None,
        default_scopes: Iterable[str] = (),
        parse_api_error: ErrorParser | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
        timeout_seconds: float = DEFAULT_TOKEN_TIMEOUT_SECONDS,
        default_expires_in: int = DEFAULT_EXPIRES_IN_SECONDS,
    ):
        super().__init__(provider_name)
        self.token_url = token_url
        self.auth_method = auth_method
        self.authorize_url = authorize_url
        self.revoke_url = revoke_url
        self.default_scopes = tuple(default_scopes)
        self.parse_api_error = parse_api_error
        self.clock = clock or DEFAULT_CLOCK
        self.timeout_seconds = float(timeout_seconds)
        self.default_expires_in = default_expires_in
        self._session = session
        self._owns_session = session is None

        logger.debug(
            "Initialized token refresher",
            extra={"provider": provider_name, "auth_method": auth_method.value},
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close HTTP client session if this refresher created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def resolve_url(self, url: EndpointUrl | None, config: OAuthConfig) -> str:
        if url is None:
            raise InvalidConfigurationError(f"{self.provider_name}: endpoint not configured")
        if isinstance(url, str):
            return url
        return url[config.environment]

    def _validate_config(self, config: OAuthConfig) -> None:
        if not config.client_id or not config.client_secret:
            raise InvalidConfigurationError(
                f"{self.provider_name}: client_id and client_secret are required"
            )

    def _client_auth(
        self, config: OAuthConfig, form: dict[str, str]
    ) -> aiohttp.BasicAuth | None:
        """Attach client credentials according to auth_method."""
        if self.auth_method is ClientAuthMethod.BASIC:
            return aiohttp.BasicAuth(config.client_id, config.client_secret)
        form["client_id"] = config.client_id
        form["client_secret"] = config.client_secret
        return None

    def _routing_from_response(
        self, data: dict[str, Any], routing: Mapping[str, str] | None
    ) -> dict[str, str]:
        """
        Merge routing updates carried by a token response.

        The default keeps the existing routing. Providers that return routing
        fields (for example an instance URL) override this.
        """
        return dict(routing or {})

    def authorization_url(
        self,
        config: OAuthConfig,
        scopes: Iterable[str] | None = None,
        state: str | None = None,
        **extra_params: str,
    ) -> str:
        """Build the consent URL the user is redirected to."""
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes if scopes is not None else self.default_scopes),
        }
        if state:
            params["state"] = state
        params.update(extra_params)
        return f"{self.resolve_url(self.authorize_url, config)}?{urlencode(params)}"

    async def exchange_code(
        self,
        config: OAuthConfig,
        code: str,
        routing: Mapping[str, str] | None = None,
    ) -> Tokens:
        """Exchange an authorization code for Tokens."""
        self._validate_config(config)
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": config.redirect_uri,
        }
        return await self._request_tokens(config, form, routing, previous_refresh_token=None)

    async def refresh(
        self,
        config: OAuthConfig,
        refresh_token: str,
        routing: Mapping[str, str] | None = None,
    ) -> Tokens:
        self._validate_config(config)
        form = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        return await self._request_tokens(
            config, form, routing, previous_refresh_token=refresh_token
        )

    async def _request_tokens(
        self,
        config: OAuthConfig,
        form: dict[str, str],
        routing: Mapping[str, str] | None,
        previous_refresh_token: str | None,
    ) -> Tokens:
        session = await self._ensure_session()
        auth = self._client_auth(config, form)
        url = self.resolve_url(self.token_url, config)
        grant_type = form["grant_type"]

        try:
            async with session.post(
                url,
                data=form,
                auth=auth,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                status = response.status
                headers = dict(response.headers)
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(
                "Token endpoint unreachable",
                extra={
                    "provider": self.provider_name,
                    "grant_type": grant_type,
                    "error_message": str(e)[:200],
                },
            )
            raise TokenRefreshError(
                f"Token endpoint unreachable: {e}",
                requires_reauthorization=False,
                provider=self.provider_name,
                cause=e,
            ) from e

        if not 200 <= status < 300:
            error = classify_response(
                status,
                headers,
                body,
                provider=self.provider_name,
                token_exchange=True,
                parse_api_error=self.parse_api_error,
            )
            logger.warning(
                "Token exchange rejected",
                extra={
                    "provider": self.provider_name,
                    "grant_type": grant_type,
                    "http_status": status,
                    "requires_reauthorization": error.requires_reauthorization,
                },
            )
            raise error

        try:
            data = json.loads(body)
        except ValueError as e:
            raise TokenRefreshError(
                "Token endpoint returned a non-JSON body",
                http_status=status,
                provider=self.provider_name,
                cause=e,
            ) from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenRefreshError(
                "Token endpoint response has no access_token",
                http_status=status,
                provider=self.provider_name,
            )

        try:
            tokens = Tokens.from_response(
                data,
                now=self.clock.now(),
                routing=self._routing_from_response(data, routing),
                previous_refresh_token=previous_refresh_token,
                default_expires_in=self.default_expires_in,
            )
        except (ValueError, TypeError) as e:
            logger.warning(
                "Token endpoint response is malformed",
                extra={
                    "provider": self.provider_name,
                    "grant_type": grant_type,
                    "error_message": str(e)[:200],
                },
            )
            raise TokenRefreshError(
                f"Token endpoint returned a malformed response: {e}",
                http_status=status,
                requires_reauthorization=False,
                provider=self.provider_name,
                cause=e,
            ) from e

        logger.debug(
            "Token exchange succeeded",
            extra={
                "provider": self.provider_name,
                "grant_type": grant_type,
                "expires_in": data.get("expires_in"),
            },
        )
        return tokens

    def _revoke_request(
        self, config: OAuthConfig, token: str, token_type_hint: str | None
    ) -> dict[str, Any]:
        """Keyword arguments for the revoke POST; form-encoded by default."""
        form = {"token": token}
        if token_type_hint:
            form["token_type_hint"] = token_type_hint
        auth = self._client_auth(config, form)
        return {"data": form, "auth": auth}

    async def revoke(
        self,
        config: OAuthConfig,
        token: str,
        token_type_hint: str | None = None,
    ) -> None:
        """
        Revoke an access or refresh token.

        Raises:
            ApiError: If the provider rejects the revocation
        """
        session = await self._ensure_session()
        url = self.resolve_url(self.revoke_url, config)
        try:
            async with session.post(
                url,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                **self._revoke_request(config, token, token_type_hint),
            ) as response:
                status = response.status
                headers = dict(response.headers)
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TokenRefreshError(
                f"Revoke endpoint unreachable: {e}", provider=self.provider_name, cause=e
            ) from e

        if not 200 <= status < 300:
            raise classify_response(
                status,
                headers,
                body,
                provider=self.provider_name,
                parse_api_error=self.parse_api_error,
            )
        logger.info("Token revoked", extra={"provider": self.provider_name})


def generate_state() -> str:
    """Random CSRF state value for the authorization redirect."""
    return secrets.token_urlsafe(32)


def encode_state(data: Mapping[str, Any]) -> str:
    """Encode state metadata (nonce, user id, redirect path) as base64url JSON."""
    raw = json.dumps(dict(data), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_state(state: str) -> dict[str, Any] | None:
    """Decode state produced by encode_state; None if it was tampered with."""
    padded = state + "=" * (-len(state) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def is_state_fresh(data: Mapping[str, Any], now: datetime, max_age_seconds: float = 600) -> bool:
    """Check the state timestamp (epoch seconds) is within max_age_seconds."""
    timestamp = data.get("timestamp")
    if not isinstance(timestamp, (int, float)):
        return False
    age = now.timestamp() - float(timestamp)
    return 0 <= age <= max_age_seconds


__all__ = [
    "BaseTokenRefresher",
    "OAuth2TokenRefresher",
    "ClientAuthMethod",
    "EndpointUrl",
    "generate_state",
    "encode_state",
    "decode_state",
    "is_state_fresh",
]
