"""
Retry policy with exception-aware decisions.

Uses the ApiError hierarchy to decide what happens after a failed attempt:
- Rate limited: retry after the provider-specified delay (exact, no jitter)
- Server/transport errors: retry with exponential backoff plus jitter
- Validation, not found, auth, cancelled: give up immediately

The attempt budget belongs to one logical operation (one pipeline execute
call). Callers needing end-to-end retries across operations compose them at
a higher layer.
"""

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from integrations.errors.exceptions import ApiError, RateLimitError

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_DELAY = 60.0
DEFAULT_JITTER_RATIO = 0.3


class RetryAction(Enum):
    RETRY_NOW = "retry_now"
    RETRY_AFTER = "retry_after"
    GIVE_UP = "give_up"


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of a retry evaluation; delay is in seconds."""

    action: RetryAction
    delay: float = 0.0
    delay_source: str | None = None

    @property
    def should_retry(self) -> bool:
        return self.action is not RetryAction.GIVE_UP


GIVE_UP = RetryDecision(RetryAction.GIVE_UP)


@dataclass
class RetryPolicy:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        initial_delay: Backoff base in seconds for attempt 0
        max_delay: Cap for computed backoff delays in seconds
        jitter_ratio: Upper bound of random jitter as a fraction of the backoff
        uniform: Random source, injectable for deterministic tests
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    jitter_ratio: float = DEFAULT_JITTER_RATIO
    uniform: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_retries = int(self.max_retries)
        self.initial_delay = float(self.initial_delay)
        self.max_delay = float(self.max_delay)
        self.jitter_ratio = float(self.jitter_ratio)
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    def backoff_delay(self, attempt: int) -> float:
        """
        Exponential backoff with additive jitter.

        delay = min(initial_delay * 2^attempt + uniform(0, jitter_ratio * backoff), max_delay)

        Args:
            attempt: 0-indexed attempt number that just failed

        Returns:
            Delay in seconds
        """
        backoff = self.initial_delay * (2**attempt)
        jitter = self.uniform(0, self.jitter_ratio * backoff)
        return min(backoff + jitter, self.max_delay)

    def decide(
        self,
        error: Exception,
        attempt: int,
        max_retries: int | None = None,
    ) -> RetryDecision:
        """
        Determine whether and when to retry after a failed attempt.

        Pure function of (error class, attempt, max retries) apart from jitter.

        Args:
            error: The classified error from the failed attempt
            attempt: 0-indexed attempt that just failed
            max_retries: Override of the configured budget (0 disables retries)

        Returns:
            RetryDecision with action and delay
        """
        budget = self.max_retries if max_retries is None else max_retries

        if attempt >= budget:
            return GIVE_UP

        if not isinstance(error, ApiError) or not error.is_retryable:
            return GIVE_UP

        if isinstance(error, RateLimitError):
            delay = max(float(error.retry_after_seconds), 0.0)
            source = "server"
        else:
            delay = self.backoff_delay(attempt)
            source = "exponential_backoff"

        if delay <= 0:
            return RetryDecision(RetryAction.RETRY_NOW, 0.0, source)
        return RetryDecision(RetryAction.RETRY_AFTER, delay, source)


DEFAULT_RETRY = RetryPolicy()
NO_RETRY = RetryPolicy(max_retries=0)


__all__ = [
    "RetryAction",
    "RetryDecision",
    "RetryPolicy",
    "DEFAULT_RETRY",
    "NO_RETRY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_JITTER_RATIO",
]
