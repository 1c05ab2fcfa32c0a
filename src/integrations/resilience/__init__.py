"""
Resilience patterns module.

Components:
    - RetryPolicy: Exponential backoff with jitter and retry-after support
    - RetryDecision / RetryAction: Outcome of a retry evaluation
    - Standard policies: DEFAULT_RETRY, NO_RETRY
"""

from .retry import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_JITTER_RATIO,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY,
    NO_RETRY,
    RetryAction,
    RetryDecision,
    RetryPolicy,
)

__all__ = [
    "RetryPolicy",
    "RetryDecision",
    "RetryAction",
    "DEFAULT_RETRY",
    "NO_RETRY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_JITTER_RATIO",
]
