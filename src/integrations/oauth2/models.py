"""OAuth2 data models and configuration."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

DEFAULT_EXPIRES_IN_SECONDS = 3600


class Environment(Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


def _mask(secret: str | None) -> str:
    if not secret:
        return "None"
    return f"'{secret[:4]}...'" if len(secret) > 8 else "'***'"


def as_utc(value: datetime | int | float | str | None) -> datetime | None:
    """
    Normalize a stored expiry to an aware UTC datetime.

    Naive datetimes are taken as UTC; numbers are epoch seconds; strings
    are ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str):
        return as_utc(datetime.fromisoformat(value))
    raise TypeError(f"Unsupported expiry value: {value!r}")


def _seconds(value: Any) -> int:
    # Providers send expires_in as int, float or numeric string ("3599.0")
    return int(float(value))


@dataclass(frozen=True, repr=False)
class Tokens:
    """
    Credentials held by one client instance.

    Attributes:
        access_token: Bearer token (or API key in API-key mode)
        refresh_token: Refresh token, None for non-refreshable credentials
        expires_at: UTC expiry of the access token, None when it never expires
            (naive datetimes are read as UTC, numbers as epoch seconds)
        routing: Provider routing fields (account_id, base_uri, realm_id, instance_url)
        token_type: Token type (typically "Bearer")
        refresh_token_expires_at: Expiry of the refresh token when the provider reports it
        scope: Space-separated scopes granted
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    routing: Mapping[str, str] = field(default_factory=dict)
    token_type: str = "Bearer"
    refresh_token_expires_at: datetime | None = None
    scope: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "expires_at", as_utc(self.expires_at))
        object.__setattr__(self, "refresh_token_expires_at", as_utc(self.refresh_token_expires_at))

    @classmethod
    def from_response(
        cls,
        response: dict[str, Any],
        now: datetime,
        routing: Mapping[str, str] | None = None,
        previous_refresh_token: str | None = None,
        default_expires_in: int = DEFAULT_EXPIRES_IN_SECONDS,
    ) -> "Tokens":
        """
        Create tokens from an OAuth2 token endpoint response.

        The previous refresh token is carried forward when the provider does
        not rotate it.

        Args:
            response: Token endpoint JSON body
            now: Current UTC time
            routing: Routing fields to carry over
            previous_refresh_token: Refresh token used for this exchange, if any
            default_expires_in: Lifetime assumed when expires_in is absent

        Returns:
            Tokens instance

        Raises:
            ValueError: If expires_in is not numeric
        """
        expires_in = response.get("expires_in") or default_expires_in
        refresh_expires_in = response.get("x_refresh_token_expires_in")

        return cls(
            access_token=response["access_token"],
            refresh_token=response.get("refresh_token") or previous_refresh_token,
            expires_at=now + timedelta(seconds=_seconds(expires_in)),
            routing=dict(routing or {}),
            token_type=response.get("token_type") or "Bearer",
            refresh_token_expires_at=(
                now + timedelta(seconds=_seconds(refresh_expires_in)) if refresh_expires_in else None
            ),
            scope=response.get("scope"),
        )

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token) and self.expires_at is not None

    def is_expired(self, now: datetime, buffer_seconds: float = 60) -> bool:
        """
        Check if the access token is expired or close to expiry.

        Tokens without an expiry (API keys) never expire.
        """
        if self.expires_at is None:
            return False
        return now >= self.expires_at - timedelta(seconds=buffer_seconds)

    def remaining_lifetime(self, now: datetime) -> timedelta | None:
        if self.expires_at is None:
            return None
        return self.expires_at - now

    def with_routing(self, **updates: str) -> "Tokens":
        """Return a copy with routing fields added or replaced."""
        merged = dict(self.routing)
        merged.update({k: v for k, v in updates.items() if v is not None})
        return replace(self, routing=merged)

    def __repr__(self) -> str:
        expires = self.expires_at.isoformat() if self.expires_at else None
        return (
            f"Tokens(access_token={_mask(self.access_token)}, "
            f"refresh_token={_mask(self.refresh_token)}, "
            f"expires_at={expires}, routing={dict(self.routing)!r})"
        )


@dataclass(frozen=True)
class OAuthConfig:
    """
    OAuth2 application credentials, immutable for the lifetime of a client.

    Attributes:
        client_id: OAuth2 client ID
        client_secret: OAuth2 client secret
        redirect_uri: Redirect URI registered with the provider
        environment: Sandbox or production endpoints
    """

    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str = ""
    environment: Environment = Environment.PRODUCTION

    def __post_init__(self):
        if isinstance(self.environment, str):
            object.__setattr__(self, "environment", Environment(self.environment.lower()))

    @property
    def is_sandbox(self) -> bool:
        return self.environment is Environment.SANDBOX


__all__ = ["Tokens", "OAuthConfig", "Environment", "DEFAULT_EXPIRES_IN_SECONDS", "as_utc"]
