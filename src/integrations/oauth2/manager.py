"""Per-client token lifecycle with single-flight refresh."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from integrations.clock import DEFAULT_CLOCK
from integrations.errors.exceptions import IntegrationError
from integrations.oauth2.models import OAuthConfig, Tokens
from integrations.oauth2.refresher import BaseTokenRefresher
from integrations.types import Clock

logger = logging.getLogger(__name__)

# Refresh this long before the access token expires
DEFAULT_REFRESH_BUFFER_SECONDS = 60

TokenRefreshCallback = Callable[[Tokens], Awaitable[None]]


class TokenManager:
    """
    Holds the Tokens of one client and refreshes them when close to expiry.

    Concurrent callers that detect an expiring token share one refresh: the
    refresh runs under an asyncio.Lock and the expiry is checked again once
    the lock is held, so waiters reuse the token obtained by the first caller.

    Usage:
        manager = TokenManager(
            tokens,
            refresher=OAuth2TokenRefresher("hubspot", token_url),
            oauth_config=config,
            on_token_refresh=save_tokens,
        )

        tokens = await manager.ensure_valid()
        headers = {"Authorization": f"Bearer {tokens.access_token}"}
    """

    def __init__(
        self,
        tokens: Tokens,
        refresher: BaseTokenRefresher | None = None,
        oauth_config: OAuthConfig | None = None,
        on_token_refresh: TokenRefreshCallback | None = None,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        clock: Clock | None = None,
        provider: str | None = None,
    ):
        """
        Initialize token manager.

        Args:
            tokens: Initial credentials
            refresher: Token endpoint client; None disables refresh
            oauth_config: Client credentials for the token endpoint; None disables refresh
            on_token_refresh: Async persistence hook invoked after every successful refresh
            refresh_buffer_seconds: Time before expiry to trigger refresh (default: 60s)
            clock: Time source
            provider: Provider name for log records
        """
        self._tokens = tokens
        self._refresher = refresher
        self._oauth_config = oauth_config
        self._on_token_refresh = on_token_refresh
        self._refresh_lock = asyncio.Lock()
        self.refresh_buffer_seconds = float(refresh_buffer_seconds)
        self.clock = clock or DEFAULT_CLOCK
        self.provider = provider
        self.refresh_count = 0

    @property
    def tokens(self) -> Tokens:
        return self._tokens

    def update_tokens(self, tokens: Tokens) -> None:
        """Replace the held tokens (for example after an external re-connect)."""
        self._tokens = tokens
        logger.debug("Tokens replaced by caller", extra={"provider": self.provider})

    async def store_tokens(self, tokens: Tokens) -> None:
        """Replace the held tokens and pass them to the persistence hook."""
        async with self._refresh_lock:
            self._tokens = tokens
        await self._persist(tokens)

    def get_access_token(self) -> str:
        return self._tokens.access_token

    @property
    def can_refresh(self) -> bool:
        return (
            self._refresher is not None
            and self._oauth_config is not None
            and self._tokens.can_refresh
        )

    def needs_refresh(self) -> bool:
        return self.can_refresh and self._tokens.is_expired(
            self.clock.now(), self.refresh_buffer_seconds
        )

    async def ensure_valid(self) -> Tokens:
        """
        Return usable tokens, refreshing first if they are about to expire.

        A refresh failure that requires reauthorization propagates. Any other
        refresh failure is logged and the existing token is returned, letting
        the API call itself surface the definitive auth error.

        Raises:
            TokenRefreshError: If the refresh token was rejected by the provider
        """
        if not self.needs_refresh():
            return self._tokens

        async with self._refresh_lock:
            # Double-check after acquiring lock (another coroutine may have refreshed)
            if not self.needs_refresh():
                logger.debug(
                    "Token was refreshed by another coroutine",
                    extra={"provider": self.provider},
                )
                return self._tokens

            current = self._tokens
            logger.debug(
                "Refreshing access token",
                extra={
                    "provider": self.provider,
                    "expires_at": current.expires_at.isoformat() if current.expires_at else None,
                },
            )

            try:
                new_tokens = await self._refresher.refresh(
                    self._oauth_config, current.refresh_token, current.routing
                )
            except IntegrationError as e:
                if getattr(e, "requires_reauthorization", False):
                    logger.warning(
                        "Refresh token rejected, reauthorization required",
                        extra={
                            "provider": self.provider,
                            "http_status": getattr(e, "http_status", None),
                            "error_category": e.category.value,
                        },
                    )
                    raise
                logger.warning(
                    "Token refresh failed, continuing with existing token",
                    extra={
                        "provider": self.provider,
                        "error_category": e.category.value,
                        "error_message": str(e)[:200],
                    },
                )
                return current

            self._tokens = new_tokens
            self.refresh_count += 1
            logger.info(
                "Access token refreshed",
                extra={
                    "provider": self.provider,
                    "expires_at": (
                        new_tokens.expires_at.isoformat() if new_tokens.expires_at else None
                    ),
                },
            )
            await self._persist(new_tokens)
            return new_tokens

    async def _persist(self, tokens: Tokens) -> None:
        if self._on_token_refresh is None:
            return
        try:
            await self._on_token_refresh(tokens)
        except Exception as e:
            # The refreshed token is still valid in memory; the next refresh retries the write
            logger.error(
                "Failed to persist refreshed tokens",
                extra={"provider": self.provider, "error_message": str(e)[:200]},
                exc_info=True,
            )

    def get_token_info(self) -> dict[str, Any]:
        """Token state for diagnostics; never includes secrets."""
        tokens = self._tokens
        remaining = tokens.remaining_lifetime(self.clock.now())
        return {
            "provider": self.provider,
            "expires_at": tokens.expires_at.isoformat() if tokens.expires_at else None,
            "remaining_seconds": remaining.total_seconds() if remaining is not None else None,
            "is_expired": tokens.is_expired(self.clock.now(), self.refresh_buffer_seconds),
            "can_refresh": self.can_refresh,
            "refresh_count": self.refresh_count,
            "token_type": tokens.token_type,
            "scope": tokens.scope,
        }

    async def close(self) -> None:
        if self._refresher is not None:
            await self._refresher.close()


__all__ = ["TokenManager", "TokenRefreshCallback", "DEFAULT_REFRESH_BUFFER_SECONDS"]
