"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from integrations.logging.context import get_log_context
from integrations.utils.json_serializers import json_serializer


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove OAuth codes, tokens and secrets before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Correlation
        "trace_id",
        "operation",
        "provider",
        "integration_id",
        # HTTP
        "http_status",
        "api_method",
        "api_url",
        "duration_seconds",
        "timeout_seconds",
        "content_type",
        # Errors
        "error_category",
        "error_message",
        "error_code",
        "is_retryable",
        "requires_reauthorization",
        "response_body",
        # Resilience
        "attempt",
        "max_attempts",
        "delay_seconds",
        "delay_source",
        "retry_after_seconds",
        # OAuth
        "grant_type",
        "auth_method",
        "expires_at",
        "expires_in",
        # Pagination
        "cursor",
        "pages_fetched",
        "page_size",
        # Resource identifiers
        "resource_id",
        "document_id",
        "document_status",
    ]

    # Numeric fields keep their JSON type instead of being stringified
    NUMERIC_FIELDS = {
        "duration_seconds": float,
        "timeout_seconds": float,
        "delay_seconds": float,
        "retry_after_seconds": float,
        "http_status": int,
        "attempt": int,
        "max_attempts": int,
        "expires_in": int,
        "pages_fetched": int,
        "page_size": int,
    }

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["api_url", "url"]

    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"([?&])(code|token|access_token|refresh_token|key|api_key|secret|client_secret|password)=[^&]*",
        re.IGNORECASE,
    )

    def _sanitize_url(self, url: str) -> str:
        return self.SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", url)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.URL_FIELDS and isinstance(value, str):
            return self._sanitize_url(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        """Coerce numeric fields to their declared type, None if that fails."""
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        expected_type = self.NUMERIC_FIELDS[field]
        try:
            return expected_type(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, str]) -> None:
        for field, value in log_context.items():
            if value:
                log_entry[field] = value

    @staticmethod
    def _should_include_source_location(record: logging.LogRecord) -> bool:
        return record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL)

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._base_log_entry(record)
        self._inject_context(log_entry, get_log_context())

        if self._should_include_source_location(record):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        # Type coercion happens before URL sanitizing
        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, use_colors: bool | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_prefix(
        record: logging.LogRecord, level_name: str, log_context: dict[str, str]
    ) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            level_name,
        ]

        provider = getattr(record, "provider", None) or log_context["provider"]
        if provider:
            parts.append(f"[{provider}]")
        if log_context["operation"]:
            parts.append(f"[{log_context['operation']}]")

        return " - ".join(parts)

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, str]) -> list[str]:
        trace_id = getattr(record, "trace_id", None) or log_context.get("trace_id")
        integration_id = log_context.get("integration_id")
        attempt = getattr(record, "attempt", None)

        tags = []
        if trace_id:
            tags.append(f"[{trace_id[:8]}]")
        if integration_id:
            tags.append(f"[int:{integration_id[:8]}]")
        if attempt is not None:
            tags.append(f"[attempt:{attempt}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        log_context = get_log_context()

        level_name = self._format_level_name(record)
        prefix = self._build_prefix(record, level_name, log_context)
        tags = self._build_tags(record, log_context)

        message = record.getMessage()
        if tags:
            message = f"{' '.join(tags)} {message}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{prefix} - {message}"


__all__ = ["JSONFormatter", "ConsoleFormatter"]
