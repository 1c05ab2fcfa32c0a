"""Context variables for structured logging."""

from contextvars import ContextVar

_provider: ContextVar[str] = ContextVar("provider", default="")
_integration_id: ContextVar[str] = ContextVar("integration_id", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")

_VARS: dict[str, ContextVar[str]] = {
    "provider": _provider,
    "integration_id": _integration_id,
    "operation": _operation,
    "trace_id": _trace_id,
}


def set_log_context(
    provider: str | None = None,
    integration_id: str | None = None,
    operation: str | None = None,
    trace_id: str | None = None,
) -> None:
    if provider is not None:
        _provider.set(provider)
    if integration_id is not None:
        _integration_id.set(integration_id)
    if operation is not None:
        _operation.set(operation)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_log_context() -> dict[str, str]:
    return {name: var.get() for name, var in _VARS.items()}


def clear_log_context() -> None:
    for var in _VARS.values():
        var.set("")


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(provider="hubspot", integration_id=integration.id):
            # All logs in this block carry provider and integration_id
            await client.create_task_for_contact(contact_id, task)
    """

    def __init__(
        self,
        provider: str | None = None,
        integration_id: str | None = None,
        operation: str | None = None,
        trace_id: str | None = None,
    ):
        self.new_context = {
            "provider": provider,
            "integration_id": integration_id,
            "operation": operation,
            "trace_id": trace_id,
        }
        self._tokens: list = []

    def __enter__(self) -> "LogContext":
        for key, value in self.new_context.items():
            if value is not None:
                self._tokens.append((_VARS[key], _VARS[key].set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restore old context in reverse order
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
        return False


__all__ = ["set_log_context", "get_log_context", "clear_log_context", "LogContext"]
