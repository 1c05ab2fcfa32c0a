"""Per-client transport settings."""

from dataclasses import dataclass, field

from integrations.resilience.retry import RetryPolicy

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "integrations-client/1.0"


@dataclass(frozen=True)
class ClientSettings:
    """
    Settings shared by every request a client issues.

    Attributes:
        timeout_seconds: Default per-attempt timeout
        retry_policy: Retry budget and backoff parameters
        refresh_buffer_seconds: Refresh tokens this long before expiry
        user_agent: User-Agent header value
        page_size: Default page size for list operations, None for provider default
    """

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    refresh_buffer_seconds: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    page_size: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "timeout_seconds", float(self.timeout_seconds))
        object.__setattr__(self, "refresh_buffer_seconds", float(self.refresh_buffer_seconds))
        if self.page_size is not None:
            object.__setattr__(self, "page_size", int(self.page_size))
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


__all__ = ["ClientSettings", "DEFAULT_TIMEOUT_SECONDS", "DEFAULT_USER_AGENT"]
