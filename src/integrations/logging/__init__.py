"""
Structured logging for provider integrations.

Components:
    - Context variables (provider, integration_id, operation, trace_id)
    - JSONFormatter / ConsoleFormatter
    - setup_logging
    - log_exception / log_with_context helpers
"""

from integrations.logging.context import (
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from integrations.logging.formatters import ConsoleFormatter, JSONFormatter
from integrations.logging.setup import get_logger, setup_logging
from integrations.logging.utilities import log_exception, log_with_context

__all__ = [
    "LogContext",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "JSONFormatter",
    "ConsoleFormatter",
    "setup_logging",
    "get_logger",
    "log_exception",
    "log_with_context",
]
