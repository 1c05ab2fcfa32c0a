"""
Request pipeline shared by every provider adapter.

One execute call: ensure a valid token (once), then run the attempt loop:
build URL and headers, issue the request bound to a timeout, classify the
response, and retry or give up according to the RetryPolicy.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, TypeVar

import aiohttp
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from integrations.clock import DEFAULT_CLOCK
from integrations.errors.classifiers import classify_response, classify_transport_error
from integrations.errors.exceptions import ApiError, IntegrationError, TransportError
from integrations.http.pagination import Page, iterate_pages
from integrations.http.request import ApiResponse, RequestSpec, build_url, decode_body
from integrations.http.settings import ClientSettings
from integrations.logging.context import get_log_context
from integrations.oauth2.manager import TokenManager
from integrations.types import Clock, ProviderRouting

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Requests slower than this are logged at INFO
SLOW_REQUEST_SECONDS = 2.0


class RequestPipeline:
    """
    Executes RequestSpecs against one provider with token refresh and retries.

    The routing object supplies everything provider-specific (base URL,
    Authorization header, error-body parsing); the pipeline owns timeouts,
    classification and retries.
    """

    def __init__(
        self,
        routing: ProviderRouting,
        token_manager: TokenManager,
        settings: ClientSettings | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ):
        self.routing = routing
        self.token_manager = token_manager
        self.settings = settings or ClientSettings()
        self.clock = clock or DEFAULT_CLOCK
        self._session = session
        self._owns_session = session is None
        self._closed = False
        self._adapters: dict[Any, TypeAdapter] = {}

    @property
    def provider(self) -> str:
        return self.routing.provider_name

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError(f"{self.provider} client is closed, cannot create new session")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.settings.user_agent})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    @staticmethod
    def _get_context_ids() -> dict[str, str]:
        return {k: v for k, v in get_log_context().items() if v}

    def _build_headers(self, spec: RequestSpec) -> dict[str, str]:
        headers = {
            "Authorization": self.routing.authorization_header(),
            "Accept": "application/json",
        }
        if spec.body is not None:
            headers["Content-Type"] = "application/json"
        # Caller overrides last
        headers.update(spec.headers)
        return headers

    async def _await_unless_cancelled(self, coro, cancel_event: asyncio.Event | None):
        """Await coro, aborting it as soon as cancel_event is set."""
        if cancel_event is None:
            return await coro

        request_task = asyncio.ensure_future(coro)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not request_task.done():
                request_task.cancel()

        if request_task.done() and not request_task.cancelled():
            return request_task.result()

        with contextlib.suppress(asyncio.CancelledError):
            await request_task
        raise TransportError("Request cancelled", cancelled=True, provider=self.provider)

    async def _send_once(
        self,
        session: aiohttp.ClientSession,
        spec: RequestSpec,
        url: str,
        headers: dict[str, str],
        timeout: float,
    ) -> ApiResponse:
        async with session.request(
            spec.method,
            url,
            json=spec.body if spec.data is None else None,
            data=spec.data,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            status = response.status
            response_headers = {k.lower(): v for k, v in response.headers.items()}
            raw = await response.read()

        if not 200 <= status < 300:
            raise classify_response(
                status,
                response_headers,
                raw,
                provider=self.provider,
                parse_api_error=self.routing.parse_api_error,
            )
        return ApiResponse(status, response_headers, decode_body(status, response_headers, raw))

    async def _attempt(self, spec: RequestSpec, url: str, timeout: float) -> ApiResponse:
        """One HTTP attempt; raises a classified ApiError on failure."""
        session = await self._ensure_session()
        headers = self._build_headers(spec)
        try:
            return await self._await_unless_cancelled(
                asyncio.wait_for(self._send_once(session, spec, url, headers, timeout), timeout),
                spec.cancel_event,
            )
        except ApiError:
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            raise classify_transport_error(
                e, provider=self.provider, timeout_seconds=timeout, url=url
            ) from e

    async def send(self, spec: RequestSpec) -> ApiResponse:
        """
        Execute a request and return the decoded 2xx response.

        The token is checked once, before the first attempt; retries reuse it.

        Raises:
            ApiError: Classified failure once retries are exhausted or not allowed
            TokenRefreshError: If the refresh token was rejected (no HTTP attempt made)
        """
        ctx = self._get_context_ids()
        operation = spec.operation or ctx.get("operation")
        if spec.cancel_event is not None and spec.cancel_event.is_set():
            raise TransportError("Request cancelled", cancelled=True, provider=self.provider)

        await self.token_manager.ensure_valid()

        policy = self.settings.retry_policy
        max_retries = 0 if spec.skip_retry else policy.max_retries
        timeout = spec.timeout if spec.timeout is not None else self.settings.timeout_seconds
        loop = asyncio.get_running_loop()
        attempt = 0

        while True:
            base_url = "" if spec.is_absolute else self.routing.base_url()
            url = build_url(base_url, spec.path, spec.query)
            logger.debug(
                "API request starting",
                extra={
                    **ctx,
                    "provider": self.provider,
                    "operation": operation,
                    "api_method": spec.method,
                    "api_url": url,
                    "attempt": attempt + 1,
                },
            )
            start_time = loop.time()

            try:
                response = await self._attempt(spec, url, timeout)
            except ApiError as error:
                duration = loop.time() - start_time
                decision = policy.decide(error, attempt, max_retries)
                log_extra = {
                    **ctx,
                    "provider": self.provider,
                    "operation": operation,
                    "api_method": spec.method,
                    "api_url": url,
                    "http_status": error.http_status,
                    "error_category": error.category.value,
                    "is_retryable": error.is_retryable,
                    "attempt": attempt + 1,
                    "max_attempts": max_retries + 1,
                    "duration_seconds": round(duration, 3),
                }

                if not decision.should_retry:
                    logger.warning("API request failed", extra=log_extra)
                    raise

                logger.info(
                    "Retrying API request",
                    extra={
                        **log_extra,
                        "delay_seconds": round(decision.delay, 3),
                        "delay_source": decision.delay_source,
                    },
                )
                completed = await self.clock.sleep(decision.delay, spec.cancel_event)
                if not completed:
                    raise TransportError(
                        "Request cancelled while waiting to retry",
                        cancelled=True,
                        provider=self.provider,
                        cause=error,
                    ) from error
                attempt += 1
                continue

            duration = loop.time() - start_time
            slow = duration > SLOW_REQUEST_SECONDS
            logger.log(
                logging.INFO if slow else logging.DEBUG,
                "Slow API request" if slow else "API request succeeded",
                extra={
                    **ctx,
                    "provider": self.provider,
                    "operation": operation,
                    "api_method": spec.method,
                    "http_status": response.status,
                    "attempt": attempt + 1,
                    "duration_seconds": round(duration, 3),
                },
            )
            return response

    def _type_adapter(self, response_model: Any) -> TypeAdapter:
        adapter = self._adapters.get(response_model)
        if adapter is None:
            adapter = TypeAdapter(response_model)
            self._adapters[response_model] = adapter
        return adapter

    def decode(self, body: Any, response_model: Any) -> Any:
        """Validate a decoded body into response_model."""
        try:
            return self._type_adapter(response_model).validate_python(body)
        except PydanticValidationError as e:
            raise IntegrationError(
                f"Unexpected {self.provider} response shape for {response_model!r}",
                cause=e,
                context={"provider": self.provider},
            ) from e

    async def execute(self, spec: RequestSpec, response_model: Any = None) -> Any:
        """
        Execute a request and return its body.

        Args:
            spec: Request to issue
            response_model: Optional pydantic model (or type) the JSON body is validated into

        Returns:
            Decoded body: model instance, JSON value, bytes for binary
            responses, or None for 204/empty bodies
        """
        response = await self.send(spec)
        if response_model is None or response.body is None:
            return response.body
        return self.decode(response.body, response_model)

    def iterate_pages(
        self,
        build_spec: Callable[[Any], RequestSpec],
        parse_page: Callable[[Any, Any], Page[T]],
        first_cursor: Any = None,
        max_pages: int | None = None,
    ) -> AsyncIterator[T]:
        """
        Lazily iterate items across pages.

        Each page is one execute call (with its own retry budget).

        Args:
            build_spec: Builds the request for a cursor (first_cursor for page one)
            parse_page: Turns (decoded body, cursor) into a Page
            first_cursor: Cursor for the first page
            max_pages: Optional cap on pages fetched
        """

        async def fetch_page(cursor: Any) -> Page[T]:
            response = await self.send(build_spec(cursor))
            return parse_page(response.body, cursor)

        return iterate_pages(fetch_page, first_cursor, max_pages)


__all__ = ["RequestPipeline", "SLOW_REQUEST_SECONDS"]
