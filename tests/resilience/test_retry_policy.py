"""
Tests for resilience.retry module.

Tests cover:
- Server-specified delays for rate limits
- Exponential backoff with jitter for server and transport errors
- Immediate give-up for non-retryable errors and exhausted budgets
"""

import pytest

from integrations.errors.exceptions import (
    AuthError,
    IntegrationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TransportError,
    ValidationError,
)
from integrations.resilience.retry import RetryAction, RetryPolicy


def no_jitter(low, high):
    return 0.0


def full_jitter(low, high):
    return high


class TestRateLimitDecisions:
    def test_retry_after_is_exact(self):
        policy = RetryPolicy(uniform=full_jitter)

        decision = policy.decide(RateLimitError("slow down", retry_after_seconds=5), attempt=0)

        assert decision.action is RetryAction.RETRY_AFTER
        assert decision.delay == 5.0
        assert decision.delay_source == "server"

    def test_retry_after_is_not_capped_by_max_delay(self):
        policy = RetryPolicy(max_delay=10)

        decision = policy.decide(RateLimitError("slow down", retry_after_seconds=120), attempt=0)

        assert decision.delay == 120.0

    def test_zero_retry_after_retries_now(self):
        decision = RetryPolicy().decide(RateLimitError("slow", retry_after_seconds=0), attempt=0)

        assert decision.action is RetryAction.RETRY_NOW
        assert decision.should_retry


class TestBackoffDecisions:
    def test_backoff_doubles_per_attempt(self):
        policy = RetryPolicy(uniform=no_jitter)
        error = ServerError("unavailable", http_status=503)

        delays = [policy.decide(error, attempt).delay for attempt in range(3)]

        assert delays == [1.0, 2.0, 4.0]
        assert policy.decide(error, 0).delay_source == "exponential_backoff"

    def test_budget_exhausted_gives_up(self):
        policy = RetryPolicy(max_retries=3, uniform=no_jitter)

        decision = policy.decide(ServerError("unavailable"), attempt=3)

        assert decision.action is RetryAction.GIVE_UP
        assert not decision.should_retry

    def test_backoff_is_capped(self):
        policy = RetryPolicy(initial_delay=10, max_delay=15, uniform=no_jitter)

        assert policy.decide(ServerError("boom"), attempt=2).delay == 15.0

    def test_jitter_is_additive_and_bounded(self):
        policy = RetryPolicy(uniform=full_jitter)

        assert policy.backoff_delay(0) == pytest.approx(1.3)
        assert policy.backoff_delay(1) == pytest.approx(2.6)

    def test_random_jitter_stays_within_ratio(self):
        policy = RetryPolicy()

        for _ in range(50):
            delay = policy.backoff_delay(2)
            assert 4.0 <= delay <= 4.0 * 1.3

    def test_timeout_is_retried(self):
        decision = RetryPolicy(uniform=no_jitter).decide(
            TransportError("timeout", timed_out=True), attempt=0
        )

        assert decision.action is RetryAction.RETRY_AFTER
        assert decision.delay == 1.0

    def test_max_retries_override(self):
        policy = RetryPolicy(max_retries=5)

        assert not policy.decide(ServerError("boom"), attempt=0, max_retries=0).should_retry


class TestNonRetryable:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad input", http_status=400),
            NotFoundError("missing", http_status=404),
            AuthError("unauthorized", http_status=401),
            AuthError("forbidden", http_status=403, forbidden=True),
            TransportError("cancelled", cancelled=True),
            IntegrationError("local failure"),
            ValueError("not an api error"),
        ],
    )
    def test_gives_up_immediately(self, error):
        decision = RetryPolicy().decide(error, attempt=0)

        assert decision.action is RetryAction.GIVE_UP


class TestPolicyConfig:
    def test_values_are_coerced(self):
        policy = RetryPolicy(max_retries="2", initial_delay="0.5", max_delay="30")

        assert policy.max_retries == 2
        assert policy.initial_delay == 0.5
        assert policy.max_delay == 30.0

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
