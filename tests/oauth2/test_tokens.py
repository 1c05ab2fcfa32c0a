"""Tests for oauth2.models (Tokens and OAuthConfig)."""

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime, timedelta

import pytest

from integrations.oauth2.models import Environment, OAuthConfig, Tokens, as_utc


class TestTokensFromResponse:
    def test_expiry_computed_from_expires_in(self, clock):
        tokens = Tokens.from_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 1800},
            now=clock.now(),
        )

        assert tokens.access_token == "a"
        assert tokens.refresh_token == "r"
        assert tokens.expires_at == clock.now() + timedelta(seconds=1800)
        assert tokens.token_type == "Bearer"

    def test_refresh_token_carried_forward_when_not_rotated(self, clock):
        tokens = Tokens.from_response(
            {"access_token": "a", "expires_in": 3600},
            now=clock.now(),
            previous_refresh_token="old-refresh",
        )

        assert tokens.refresh_token == "old-refresh"

    def test_missing_expires_in_uses_default(self, clock):
        tokens = Tokens.from_response({"access_token": "a"}, now=clock.now(), default_expires_in=600)

        assert tokens.expires_at == clock.now() + timedelta(seconds=600)

    def test_refresh_token_expiry_and_routing(self, clock):
        tokens = Tokens.from_response(
            {
                "access_token": "a",
                "refresh_token": "r",
                "expires_in": 3600,
                "x_refresh_token_expires_in": 8726400,
                "scope": "accounting",
            },
            now=clock.now(),
            routing={"realm_id": "123"},
        )

        assert tokens.refresh_token_expires_at == clock.now() + timedelta(seconds=8726400)
        assert tokens.routing == {"realm_id": "123"}
        assert tokens.scope == "accounting"

    def test_fractional_expires_in_string(self, clock):
        tokens = Tokens.from_response(
            {"access_token": "a", "expires_in": "3599.0"}, now=clock.now()
        )

        assert tokens.expires_at == clock.now() + timedelta(seconds=3599)

    def test_non_numeric_expires_in_raises_value_error(self, clock):
        with pytest.raises(ValueError):
            Tokens.from_response({"access_token": "a", "expires_in": "soon"}, now=clock.now())


class TestExpiryNormalization:
    def test_naive_expiry_is_read_as_utc(self, clock):
        tokens = Tokens("a", "r", expires_at=datetime(2026, 1, 15, 13, 0))

        assert tokens.expires_at == datetime(2026, 1, 15, 13, 0, tzinfo=UTC)
        assert not tokens.is_expired(clock.now())
        assert tokens.remaining_lifetime(clock.now()) == timedelta(hours=1)

    def test_naive_expiry_inside_buffer(self, clock):
        tokens = Tokens("a", "r", expires_at=datetime(2026, 1, 15, 12, 0, 30))

        assert tokens.is_expired(clock.now(), buffer_seconds=60)

    def test_epoch_seconds(self, clock):
        epoch = int((clock.now() + timedelta(hours=1)).timestamp())

        tokens = Tokens("a", "r", expires_at=epoch, refresh_token_expires_at=float(epoch))

        assert tokens.expires_at == clock.now() + timedelta(hours=1)
        assert tokens.refresh_token_expires_at == clock.now() + timedelta(hours=1)

    def test_iso_string(self, clock):
        tokens = Tokens("a", "r", expires_at="2026-01-15T13:00:00+00:00")

        assert tokens.expires_at == clock.now() + timedelta(hours=1)

    def test_aware_expiry_is_unchanged(self, fresh_tokens, clock):
        assert fresh_tokens.expires_at == clock.now() + timedelta(hours=1)
        assert as_utc(None) is None

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            Tokens("a", expires_at=[2026, 1, 15])


class TestTokensExpiry:
    def test_within_buffer_is_expired(self, clock, expiring_tokens):
        assert expiring_tokens.is_expired(clock.now(), buffer_seconds=60)
        assert not expiring_tokens.is_expired(clock.now(), buffer_seconds=10)

    def test_fresh_token_is_not_expired(self, clock, fresh_tokens):
        assert not fresh_tokens.is_expired(clock.now())
        assert fresh_tokens.remaining_lifetime(clock.now()) == timedelta(hours=1)

    def test_token_without_expiry_never_expires(self, clock):
        api_key = Tokens(access_token="key")

        assert not api_key.is_expired(clock.now())
        assert api_key.remaining_lifetime(clock.now()) is None
        assert not api_key.can_refresh

    def test_can_refresh_requires_refresh_token_and_expiry(self, clock, fresh_tokens):
        assert fresh_tokens.can_refresh
        assert not Tokens("a", expires_at=clock.now()).can_refresh


class TestTokensValueSemantics:
    def test_immutable(self, fresh_tokens):
        with pytest.raises(FrozenInstanceError):
            fresh_tokens.access_token = "changed"

    def test_with_routing_returns_copy(self, fresh_tokens):
        updated = fresh_tokens.with_routing(account_id="acct", base_uri=None)

        assert updated.routing == {"account_id": "acct"}
        assert fresh_tokens.routing == {}
        assert updated.access_token == fresh_tokens.access_token

    def test_repr_masks_secrets(self):
        tokens = Tokens(access_token="eyJhbGciOiJSUzI1NiJ9.secret", refresh_token="short")

        text = repr(tokens)

        assert "eyJhbGciOiJSUzI1NiJ9.secret" not in text
        assert "short" not in text
        assert "eyJh..." in text


class TestOAuthConfig:
    def test_environment_from_string(self):
        config = OAuthConfig("id", "secret", environment="SANDBOX")

        assert config.environment is Environment.SANDBOX
        assert config.is_sandbox

    def test_secret_not_in_repr(self):
        assert "top-secret" not in repr(OAuthConfig("id", "top-secret"))
