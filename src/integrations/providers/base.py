"""
Base class for provider adapters.

An adapter supplies only what differs between providers: the base URL
(with any account/realm/instance routing), the Authorization header format,
error-body parsing, and typed request/response shapes. Token refresh and
retries belong to the shared RequestPipeline.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel

from integrations.clock import DEFAULT_CLOCK
from integrations.errors.classifiers import ParsedApiError, default_parse_api_error
from integrations.errors.exceptions import InvalidConfigurationError
from integrations.http.pagination import Page
from integrations.http.pipeline import RequestPipeline
from integrations.http.request import RequestOptions, RequestSpec
from integrations.http.settings import ClientSettings
from integrations.oauth2.manager import TokenManager, TokenRefreshCallback
from integrations.oauth2.models import OAuthConfig, Tokens
from integrations.oauth2.refresher import BaseTokenRefresher
from integrations.types import Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderModel(BaseModel):
    """Base for provider payload models; unknown provider fields are kept."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    def to_payload(self) -> dict[str, Any]:
        """Request body in the provider's wire naming, without unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProviderAdapter(ABC):
    """
    Abstract base class for provider API clients.

    Subclasses set provider_name and default_page_size, and implement
    base_url() and create_refresher().
    """

    provider_name: str = "provider"
    default_page_size: int = 50

    def __init__(
        self,
        tokens: Tokens,
        oauth_config: OAuthConfig | None = None,
        on_token_refresh: TokenRefreshCallback | None = None,
        settings: ClientSettings | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
        refresher: BaseTokenRefresher | None = None,
    ):
        """
        Initialize adapter.

        Args:
            tokens: Credentials and routing fields
            oauth_config: OAuth client credentials; None disables refresh (API-key mode)
            on_token_refresh: Async hook persisting refreshed tokens
            settings: Timeout, retry and refresh settings
            session: Shared aiohttp session (created lazily when None)
            clock: Time source
            refresher: Token endpoint client override
        """
        if not tokens.access_token:
            raise InvalidConfigurationError(f"{self.provider_name}: access token is required")

        self.settings = settings or ClientSettings()
        self.clock = clock or DEFAULT_CLOCK
        self.oauth_config = oauth_config

        if refresher is None and oauth_config is not None:
            refresher = self.create_refresher(session=session, clock=self.clock)

        self.token_manager = TokenManager(
            tokens,
            refresher=refresher,
            oauth_config=oauth_config,
            on_token_refresh=on_token_refresh,
            refresh_buffer_seconds=self.settings.refresh_buffer_seconds,
            clock=self.clock,
            provider=self.provider_name,
        )
        self.pipeline = RequestPipeline(
            self, self.token_manager, self.settings, session=session, clock=self.clock
        )

        logger.debug(
            "Provider client initialized",
            extra={
                "provider": self.provider_name,
                "timeout_seconds": self.settings.timeout_seconds,
                "max_attempts": self.settings.retry_policy.max_retries + 1,
            },
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.pipeline.close()
        await self.token_manager.close()

    @classmethod
    @abstractmethod
    def create_refresher(
        cls,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> BaseTokenRefresher:
        """Token endpoint client for this provider."""
        pass

    @abstractmethod
    def base_url(self) -> str:
        """Base URL for resource calls, including routing from the current tokens."""
        pass

    @property
    def tokens(self) -> Tokens:
        return self.token_manager.tokens

    def authorization_header(self) -> str:
        return f"Bearer {self.token_manager.get_access_token()}"

    def parse_api_error(self, payload: Any) -> ParsedApiError:
        return default_parse_api_error(payload)

    def update_tokens(self, tokens: Tokens) -> None:
        self.token_manager.update_tokens(tokens)

    def get_access_token(self) -> str:
        return self.token_manager.get_access_token()

    def routing_value(self, key: str) -> str:
        """Routing field from the current tokens; raises if missing."""
        value = self.tokens.routing.get(key)
        if not value:
            raise InvalidConfigurationError(
                f"{self.provider_name}: routing field '{key}' is required",
                context={"provider": self.provider_name},
            )
        return value

    def page_size(self, requested: int | None = None) -> int:
        return requested or self.settings.page_size or self.default_page_size

    def request(
        self,
        method: str,
        path: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> RequestSpec:
        """Build a RequestSpec with the caller's options applied."""
        spec = RequestSpec(method, path, **kwargs)
        return options.apply(spec) if options else spec

    async def execute(self, spec: RequestSpec, response_model: Any = None) -> Any:
        return await self.pipeline.execute(spec, response_model)

    def iterate_pages(
        self,
        build_spec: Callable[[Any], RequestSpec],
        parse_page: Callable[[Any, Any], Page[T]],
        first_cursor: Any = None,
        max_pages: int | None = None,
    ) -> AsyncIterator[T]:
        return self.pipeline.iterate_pages(build_spec, parse_page, first_cursor, max_pages)


__all__ = ["ProviderAdapter", "ProviderModel"]
