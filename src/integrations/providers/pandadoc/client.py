"""PandaDoc public API client."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError
from integrations.errors.exceptions import DocumentNotReadyError, TransportError
from integrations.http.pagination import Page
from integrations.http.request import RequestOptions, RequestSpec
from integrations.http.settings import ClientSettings
from integrations.oauth2.models import Tokens
from integrations.providers.base import ProviderAdapter
from integrations.providers.pandadoc.auth import (
    API_BASE_URL,
    PandaDocTokenRefresher,
    parse_pandadoc_error,
)
from integrations.providers.pandadoc.schemas import (
    STATUS_DRAFT,
    Contact,
    ContactListResponse,
    ContentLibraryItem,
    ContentLibraryItemDetails,
    ContentLibraryItemListResponse,
    CreateDocumentRequest,
    CreateDocumentResponse,
    Document,
    DocumentContent,
    DocumentListResponse,
    DocumentSummary,
    DownloadLink,
    FolderListResponse,
    PandaDocUser,
    SendDocumentRequest,
    SendDocumentResponse,
    TemplateDetails,
    TemplateListResponse,
    TemplateSummary,
)
from integrations.types import Clock

logger = logging.getLogger(__name__)

DEFAULT_WAIT_ATTEMPTS = 30
DEFAULT_WAIT_DELAY_SECONDS = 2.0


class PandaDocClient(ProviderAdapter):
    """
    Client for the PandaDoc public API.

    Works with OAuth tokens (Bearer, refreshed by the pipeline) or with a
    workspace API key (see with_api_key), which is sent as
    "Authorization: API-Key <key>" and never refreshed.
    """

    provider_name = "pandadoc"
    default_page_size = 50

    def __init__(self, *args: Any, api_key: str | None = None, **kwargs: Any):
        self.api_key = api_key
        super().__init__(*args, **kwargs)

    @classmethod
    def with_api_key(
        cls,
        api_key: str,
        settings: ClientSettings | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> "PandaDocClient":
        """Client authenticated by API key; it holds no refresh token."""
        return cls(
            Tokens(access_token=api_key),
            settings=settings,
            session=session,
            clock=clock,
            api_key=api_key,
        )

    @classmethod
    def create_refresher(
        cls,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> PandaDocTokenRefresher:
        return PandaDocTokenRefresher(session=session, clock=clock)

    def base_url(self) -> str:
        return API_BASE_URL

    def authorization_header(self) -> str:
        if self.api_key:
            return f"API-Key {self.api_key}"
        return super().authorization_header()

    def parse_api_error(self, payload: Any) -> ParsedApiError:
        return parse_pandadoc_error(payload)

    def _iterate_numbered(
        self,
        path: str,
        list_model: Any,
        page_size: int | None,
        operation: str,
        **query: Any,
    ) -> AsyncIterator[Any]:
        """Iterate a 1-based page/count listing until a short page."""
        size = self.page_size(page_size)

        def build(page: int) -> RequestSpec:
            return self.request(
                "GET",
                path,
                query={"page": page, "count": size, **query},
                operation=operation,
            )

        def parse(body: Any, page: int) -> Page[Any]:
            items = self.pipeline.decode(body or {}, list_model).results
            return Page.from_sized(items, size, next_cursor=page + 1)

        return self.iterate_pages(build, parse, first_cursor=1)

    # =========================================================================
    # Templates
    # =========================================================================

    async def list_templates(
        self,
        page: int = 1,
        count: int | None = None,
        query: str | None = None,
        options: RequestOptions | None = None,
    ) -> TemplateListResponse:
        spec = self.request(
            "GET",
            "/templates",
            options,
            query={"page": page, "count": self.page_size(count), "q": query},
            operation="pandadoc.list_templates",
        )
        return await self.execute(spec, TemplateListResponse)

    def iterate_templates(self, page_size: int | None = None) -> AsyncIterator[TemplateSummary]:
        return self._iterate_numbered(
            "/templates", TemplateListResponse, page_size, "pandadoc.iterate_templates"
        )

    async def get_template_details(
        self, template_id: str, options: RequestOptions | None = None
    ) -> TemplateDetails:
        spec = self.request(
            "GET",
            f"/templates/{template_id}/details",
            options,
            operation="pandadoc.get_template_details",
        )
        return await self.execute(spec, TemplateDetails)

    async def list_template_folders(
        self,
        parent_uuid: str | None = None,
        page: int = 1,
        count: int | None = None,
        options: RequestOptions | None = None,
    ) -> FolderListResponse:
        """Template folders; without parent_uuid, the top-level folders."""
        spec = self.request(
            "GET",
            "/templates/folders",
            options,
            query={"parent_uuid": parent_uuid, "page": page, "count": self.page_size(count)},
            operation="pandadoc.list_template_folders",
        )
        return await self.execute(spec, FolderListResponse)

    # =========================================================================
    # Content library
    # =========================================================================

    async def list_content_library_items(
        self,
        page: int = 1,
        count: int | None = None,
        query: str | None = None,
        options: RequestOptions | None = None,
    ) -> ContentLibraryItemListResponse:
        spec = self.request(
            "GET",
            "/content-library-items",
            options,
            query={"page": page, "count": self.page_size(count), "q": query},
            operation="pandadoc.list_content_library_items",
        )
        return await self.execute(spec, ContentLibraryItemListResponse)

    def iterate_content_library_items(
        self, query: str | None = None, page_size: int | None = None
    ) -> AsyncIterator[ContentLibraryItem]:
        return self._iterate_numbered(
            "/content-library-items",
            ContentLibraryItemListResponse,
            page_size,
            "pandadoc.iterate_content_library_items",
            q=query,
        )

    async def get_content_library_item(
        self, item_id: str, options: RequestOptions | None = None
    ) -> ContentLibraryItemDetails:
        spec = self.request(
            "GET",
            f"/content-library-items/{item_id}/details",
            options,
            operation="pandadoc.get_content_library_item",
        )
        return await self.execute(spec, ContentLibraryItemDetails)

    # =========================================================================
    # Documents
    # =========================================================================

    @staticmethod
    def _status_filter(status: str | None) -> str | None:
        # List filters take the status without its "document." prefix
        return status.removeprefix("document.") if status else None

    async def list_documents(
        self,
        page: int = 1,
        count: int | None = None,
        status: str | None = None,
        options: RequestOptions | None = None,
    ) -> DocumentListResponse:
        spec = self.request(
            "GET",
            "/documents",
            options,
            query={
                "page": page,
                "count": self.page_size(count),
                "status": self._status_filter(status),
            },
            operation="pandadoc.list_documents",
        )
        return await self.execute(spec, DocumentListResponse)

    def iterate_documents(
        self, status: str | None = None, page_size: int | None = None
    ) -> AsyncIterator[DocumentSummary]:
        return self._iterate_numbered(
            "/documents",
            DocumentListResponse,
            page_size,
            "pandadoc.iterate_documents",
            status=self._status_filter(status),
        )

    async def _get_ready(self, spec: RequestSpec, document_id: str) -> Document:
        response = await self.pipeline.send(spec)
        if response.status == 202:
            body = response.body if isinstance(response.body, dict) else {}
            raise DocumentNotReadyError(str(body.get("id") or document_id))
        return self.pipeline.decode(response.body, Document)

    async def get_document(self, document_id: str, options: RequestOptions | None = None) -> Document:
        """
        Get a document and its status.

        Raises:
            DocumentNotReadyError: If PandaDoc answers 202 (still processing)
        """
        spec = self.request(
            "GET", f"/documents/{document_id}", options, operation="pandadoc.get_document"
        )
        return await self._get_ready(spec, document_id)

    async def get_document_details(
        self, document_id: str, options: RequestOptions | None = None
    ) -> Document:
        """Document with recipients, fields, tokens and pricing."""
        spec = self.request(
            "GET",
            f"/documents/{document_id}/details",
            options,
            operation="pandadoc.get_document_details",
        )
        return await self._get_ready(spec, document_id)

    async def wait_for_document(
        self,
        document_id: str,
        max_attempts: int = DEFAULT_WAIT_ATTEMPTS,
        delay_seconds: float = DEFAULT_WAIT_DELAY_SECONDS,
        cancel_event: asyncio.Event | None = None,
    ) -> Document:
        """
        Poll until a document has left the draft state.

        Each poll is a full pipeline call with its own retry budget. Sleeps
        between polls are interrupted by cancel_event.

        Raises:
            DocumentNotReadyError: If the document is still processing after max_attempts
            TransportError: If cancel_event is set while waiting
        """
        options = RequestOptions(cancel_event=cancel_event)
        for attempt in range(1, max_attempts + 1):
            try:
                document = await self.get_document(document_id, options)
                if document.status != STATUS_DRAFT:
                    return document
                status = document.status
            except DocumentNotReadyError:
                status = None

            logger.debug(
                "Document not ready",
                extra={
                    "provider": self.provider_name,
                    "document_id": document_id,
                    "document_status": status,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                },
            )
            if attempt == max_attempts:
                break
            if not await self.clock.sleep(delay_seconds, cancel_event):
                raise TransportError(
                    "Waiting for document cancelled",
                    cancelled=True,
                    provider=self.provider_name,
                )

        logger.warning(
            "Document did not become ready",
            extra={
                "provider": self.provider_name,
                "document_id": document_id,
                "max_attempts": max_attempts,
            },
        )
        raise DocumentNotReadyError(document_id)

    async def create_document_from_template(
        self,
        request: CreateDocumentRequest,
        options: RequestOptions | None = None,
    ) -> CreateDocumentResponse:
        """Create a document from a template; it starts in document.uploaded/draft."""
        spec = self.request(
            "POST",
            "/documents",
            options,
            body=request.to_payload(),
            operation="pandadoc.create_document_from_template",
        )
        return await self.execute(spec, CreateDocumentResponse)

    async def send_document(
        self,
        document_id: str,
        request: SendDocumentRequest | None = None,
        options: RequestOptions | None = None,
    ) -> SendDocumentResponse:
        spec = self.request(
            "POST",
            f"/documents/{document_id}/send",
            options,
            body=request.to_payload() if request else {},
            operation="pandadoc.send_document",
        )
        return await self.execute(spec, SendDocumentResponse)

    async def download_document(
        self,
        document_id: str,
        include_certificate: bool = False,
        watermark: bool | None = None,
        options: RequestOptions | None = None,
    ) -> bytes:
        """Document PDF as bytes."""
        query: dict[str, Any] = {}
        if include_certificate:
            query["include_certificate"] = 1
        if watermark is not None:
            query["watermark"] = 1 if watermark else 0
        spec = self.request(
            "GET",
            f"/documents/{document_id}/download",
            options,
            query=query,
            headers={"Accept": "application/pdf"},
            operation="pandadoc.download_document",
        )
        return await self.execute(spec)

    async def delete_document(self, document_id: str, options: RequestOptions | None = None) -> None:
        spec = self.request(
            "DELETE", f"/documents/{document_id}", options, operation="pandadoc.delete_document"
        )
        await self.execute(spec)

    async def get_document_content(
        self, document_id: str, options: RequestOptions | None = None
    ) -> DocumentContent:
        spec = self.request(
            "GET",
            f"/documents/{document_id}/content",
            options,
            operation="pandadoc.get_document_content",
        )
        return await self.execute(spec, DocumentContent)

    async def get_document_download_link(
        self, document_id: str, options: RequestOptions | None = None
    ) -> DownloadLink:
        """Short-lived public link to the document PDF."""
        spec = self.request(
            "GET",
            f"/documents/{document_id}/download-link",
            options,
            operation="pandadoc.get_document_download_link",
        )
        return await self.execute(spec, DownloadLink)

    async def list_document_folders(
        self,
        parent_uuid: str | None = None,
        page: int = 1,
        count: int | None = None,
        options: RequestOptions | None = None,
    ) -> FolderListResponse:
        spec = self.request(
            "GET",
            "/documents/folders",
            options,
            query={"parent_uuid": parent_uuid, "page": page, "count": self.page_size(count)},
            operation="pandadoc.list_document_folders",
        )
        return await self.execute(spec, FolderListResponse)

    # =========================================================================
    # Members and contacts
    # =========================================================================

    async def get_current_user(self, options: RequestOptions | None = None) -> PandaDocUser:
        spec = self.request(
            "GET", "/members/current", options, operation="pandadoc.get_current_user"
        )
        return await self.execute(spec, PandaDocUser)

    async def list_contacts(
        self,
        page: int = 1,
        count: int | None = None,
        options: RequestOptions | None = None,
    ) -> ContactListResponse:
        spec = self.request(
            "GET",
            "/contacts",
            options,
            query={"page": page, "count": self.page_size(count)},
            operation="pandadoc.list_contacts",
        )
        return await self.execute(spec, ContactListResponse)

    async def get_contact(self, contact_id: str, options: RequestOptions | None = None) -> Contact:
        spec = self.request(
            "GET", f"/contacts/{contact_id}", options, operation="pandadoc.get_contact"
        )
        return await self.execute(spec, Contact)

    def iterate_contacts(self, page_size: int | None = None) -> AsyncIterator[Contact]:
        return self._iterate_numbered(
            "/contacts", ContactListResponse, page_size, "pandadoc.iterate_contacts"
        )


__all__ = ["PandaDocClient", "DEFAULT_WAIT_ATTEMPTS", "DEFAULT_WAIT_DELAY_SECONDS"]
