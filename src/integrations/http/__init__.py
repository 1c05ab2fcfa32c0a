"""
HTTP request pipeline.

Components:
    - RequestSpec / ApiResponse: Request and response values
    - RequestPipeline: Token check, timeout, classification and retry loop
    - Page / iterate_pages: Lazy pagination
    - ClientSettings: Per-client timeout, retry and refresh settings
"""

from integrations.http.pagination import Page, collect, iterate_pages
from integrations.http.pipeline import RequestPipeline
from integrations.http.request import (
    ApiResponse,
    RequestOptions,
    RequestSpec,
    build_url,
    decode_body,
)
from integrations.http.settings import ClientSettings

__all__ = [
    "RequestSpec",
    "RequestOptions",
    "ApiResponse",
    "RequestPipeline",
    "ClientSettings",
    "Page",
    "iterate_pages",
    "collect",
    "build_url",
    "decode_body",
]
