"""Request and response value types for the request pipeline."""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

BINARY_CONTENT_TYPES = ("application/pdf", "application/octet-stream")


@dataclass
class RequestSpec:
    """
    One logical API call.

    Attributes:
        method: HTTP method
        path: Path relative to the adapter base URL, or an absolute URL
        query: Query parameters; None values are omitted from the URL
        body: JSON body
        data: Raw body (bytes or form mapping), sent instead of body
        timeout: Per-request timeout override in seconds
        skip_retry: Disable retries for this call (one attempt only)
        headers: Caller headers, applied after the defaults
        cancel_event: Set to abort the call and any pending retry delay
        operation: Operation name for log records
    """

    method: str
    path: str
    query: Mapping[str, Any] | None = None
    body: Any = None
    data: Any = None
    timeout: float | None = None
    skip_retry: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)
    cancel_event: asyncio.Event | None = None
    operation: str | None = None

    def __post_init__(self):
        self.method = self.method.upper()

    @property
    def is_absolute(self) -> bool:
        return is_absolute_url(self.path)


@dataclass(frozen=True)
class RequestOptions:
    """
    Caller overrides accepted by every adapter operation.

    Attributes:
        timeout: Per-request timeout in seconds
        skip_retry: Make exactly one attempt
        headers: Extra headers, applied last
        cancel_event: Set to abort the call
    """

    timeout: float | None = None
    skip_retry: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)
    cancel_event: asyncio.Event | None = None

    def apply(self, spec: RequestSpec) -> RequestSpec:
        """Copy these overrides onto spec; adapter headers are overridden by caller headers."""
        if self.timeout is not None:
            spec.timeout = self.timeout
        spec.skip_retry = spec.skip_retry or self.skip_retry
        if self.headers:
            spec.headers = {**spec.headers, **self.headers}
        if self.cancel_event is not None:
            spec.cancel_event = self.cancel_event
        return spec


@dataclass(frozen=True)
class ApiResponse:
    """A successful (2xx) response; body is already decoded."""

    status: int
    headers: Mapping[str, str]
    body: Any

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


def _format_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_absolute_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def build_url(base_url: str, path: str, query: Mapping[str, Any] | None = None) -> str:
    """
    Join base URL, path and query.

    Absolute paths (OAuth host endpoints, next-page URIs) are used as given.
    Query entries whose value is None are omitted.
    """
    if is_absolute_url(path):
        url = path
    else:
        url = f"{base_url.rstrip('/')}/{path.lstrip('/')}" if path else base_url.rstrip("/")

    params = [(k, _format_query_value(v)) for k, v in (query or {}).items() if v is not None]
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def decode_body(status: int, headers: Mapping[str, str], raw: bytes) -> Any:
    """
    Decode a successful response body.

    204 and empty bodies decode to None; PDF and octet-stream responses are
    returned as raw bytes; JSON is parsed; other text is returned as str.
    """
    if status == 204 or not raw:
        return None
    content_type = (headers.get("content-type") or "").split(";")[0].strip().lower()
    if content_type in BINARY_CONTENT_TYPES:
        return bytes(raw)
    text = raw.decode("utf-8", errors="replace")
    if content_type.endswith("json") or not content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


__all__ = [
    "RequestSpec",
    "RequestOptions",
    "ApiResponse",
    "BINARY_CONTENT_TYPES",
    "is_absolute_url",
    "build_url",
    "decode_body",
]
