"""
pytest configuration for integrations tests.

Adds src directory to Python path for imports and provides fakes for time
and for aiohttp sessions so no test touches the network or waits on a real
clock.
"""

import asyncio
import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from integrations.http.settings import ClientSettings  # noqa: E402
from integrations.oauth2.models import OAuthConfig, Tokens  # noqa: E402
from integrations.resilience.retry import RetryPolicy  # noqa: E402

START_TIME = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Clock that records sleeps and advances time without waiting."""

    def __init__(self, now: datetime = START_TIME):
        self.start = now
        self.current = now
        self.sleeps: list[float] = []
        self.on_sleep = None

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    @property
    def elapsed(self) -> float:
        return (self.current - self.start).total_seconds()

    async def sleep(self, seconds: float, cancel_event: asyncio.Event | None = None) -> bool:
        if self.on_sleep is not None:
            self.on_sleep(seconds)
        if cancel_event is not None and cancel_event.is_set():
            return False
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)
        return True


class FakeResponse:
    """aiohttp response stand-in usable as an async context manager."""

    def __init__(
        self,
        body: Any = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
        raw: bytes | None = None,
        raises: BaseException | None = None,
        delay: float = 0.0,
    ):
        self.status = status
        self.headers = dict(headers or {})
        self.raises = raises
        self.delay = delay
        if raw is not None:
            self._raw = raw
        elif body is None:
            self._raw = b""
        else:
            self._raw = json.dumps(body).encode()
            self.headers.setdefault("Content-Type", "application/json")

    async def read(self) -> bytes:
        return self._raw

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: dict[str, Any] = field(default_factory=dict)

    @property
    def headers(self) -> dict[str, str]:
        return self.kwargs.get("headers") or {}


class FakeSession:
    """
    Scripted aiohttp.ClientSession.

    Responses are served in order. A callable entry is invoked with the
    RecordedCall and must return a FakeResponse.
    """

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls: list[RecordedCall] = []
        self.closed = False

    def add(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        call = RecordedCall(method.upper(), url, kwargs)
        self.calls.append(call)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        return response(call) if callable(response) else response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("DELETE", url, **kwargs)

    async def close(self) -> None:
        self.closed = True

    def calls_to(self, fragment: str) -> list[RecordedCall]:
        return [c for c in self.calls if fragment in c.url]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def respond():
    """Factory for scripted responses: respond({"id": "1"}, status=201)."""
    return FakeResponse


@pytest.fixture
def settings() -> ClientSettings:
    """Settings with deterministic (jitter-free) backoff."""
    return ClientSettings(retry_policy=RetryPolicy(uniform=lambda low, high: 0.0))


@pytest.fixture
def oauth_config() -> OAuthConfig:
    return OAuthConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://app.example.com/callback",
    )


@pytest.fixture
def fresh_tokens(clock) -> Tokens:
    """Tokens valid for another hour."""
    return Tokens(
        access_token="access-token",
        refresh_token="refresh-token",
        expires_at=clock.now() + timedelta(hours=1),
    )


@pytest.fixture
def expiring_tokens(clock) -> Tokens:
    """Tokens inside the default 60s refresh buffer."""
    return Tokens(
        access_token="old-access",
        refresh_token="refresh-token",
        expires_at=clock.now() + timedelta(seconds=30),
    )


@pytest.fixture
def token_body() -> dict[str, Any]:
    return {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "expires_in": 3600,
        "token_type": "Bearer",
    }
