"""DocuSign eSignature REST API client."""

import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError
from integrations.errors.exceptions import InvalidConfigurationError
from integrations.http.pagination import Page
from integrations.http.request import RequestOptions
from integrations.oauth2.models import Environment
from integrations.providers.base import ProviderAdapter
from integrations.providers.docusign.auth import (
    DocuSignTokenRefresher,
    oauth_url,
    parse_docusign_error,
)
from integrations.providers.docusign.schemas import (
    CreateEnvelopeRequest,
    CreateEnvelopeResponse,
    DocuSignAccount,
    DocuSignUserInfo,
    Envelope,
    EnvelopeListResponse,
    EnvelopeSummary,
    Template,
    TemplateListResponse,
    TemplateSummary,
)
from integrations.types import Clock

logger = logging.getLogger(__name__)

API_VERSION_PATH = "/restapi/v2.1"
MAX_PAGE_SIZE = 100


class DocuSignClient(ProviderAdapter):
    """
    Client for the DocuSign eSignature API.

    Requires routing fields account_id and base_uri. Both can be discovered
    after the code exchange with discover_account().

    Usage:
        async with DocuSignClient(tokens, oauth_config, on_token_refresh=save) as client:
            async for template in client.iterate_templates():
                print(template.name)
    """

    provider_name = "docusign"
    default_page_size = 50

    @classmethod
    def create_refresher(
        cls,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> DocuSignTokenRefresher:
        return DocuSignTokenRefresher(session=session, clock=clock)

    @property
    def environment(self) -> Environment:
        return self.oauth_config.environment if self.oauth_config else Environment.PRODUCTION

    def base_url(self) -> str:
        base_uri = self.routing_value("base_uri").rstrip("/")
        account_id = self.routing_value("account_id")
        return f"{base_uri}{API_VERSION_PATH}/accounts/{account_id}"

    def parse_api_error(self, payload: Any) -> ParsedApiError:
        return parse_docusign_error(payload)

    # =========================================================================
    # Account discovery
    # =========================================================================

    async def get_user_info(self, options: RequestOptions | None = None) -> DocuSignUserInfo:
        """User info from the OAuth host, including accounts and their base URIs."""
        spec = self.request(
            "GET",
            oauth_url(self.environment, "/oauth/userinfo"),
            options,
            operation="docusign.get_user_info",
        )
        return await self.execute(spec, DocuSignUserInfo)

    async def discover_account(
        self,
        account_id: str | None = None,
        options: RequestOptions | None = None,
    ) -> DocuSignAccount:
        """
        Resolve the account to use and store its routing on the held tokens.

        The updated tokens go through the on_token_refresh hook so the routing
        survives a restart.

        Args:
            account_id: Account to select; the user's default account when None

        Raises:
            InvalidConfigurationError: If the user has no matching account
        """
        user_info = await self.get_user_info(options)
        if account_id is None:
            account = user_info.default_account
        else:
            account = next((a for a in user_info.accounts if a.account_id == account_id), None)
        if account is None:
            raise InvalidConfigurationError(
                "DocuSign user has no matching account",
                context={"account_id": account_id},
            )

        await self.token_manager.store_tokens(
            self.tokens.with_routing(account_id=account.account_id, base_uri=account.base_uri)
        )
        logger.info(
            "DocuSign account discovered",
            extra={"provider": self.provider_name, "resource_id": account.account_id},
        )
        return account

    # =========================================================================
    # Templates
    # =========================================================================

    async def list_templates(
        self,
        start_position: int = 0,
        count: int | None = None,
        options: RequestOptions | None = None,
    ) -> TemplateListResponse:
        spec = self.request(
            "GET",
            "/templates",
            options,
            query={
                "start_position": start_position,
                "count": min(self.page_size(count), MAX_PAGE_SIZE),
            },
            operation="docusign.list_templates",
        )
        return await self.execute(spec, TemplateListResponse)

    def iterate_templates(self, page_size: int | None = None) -> AsyncIterator[TemplateSummary]:
        size = min(self.page_size(page_size), MAX_PAGE_SIZE)

        def build(start: int):
            return self.request(
                "GET",
                "/templates",
                query={"start_position": start, "count": size},
                operation="docusign.iterate_templates",
            )

        def parse(body: Any, start: int) -> Page[TemplateSummary]:
            items = self.pipeline.decode(body or {}, TemplateListResponse).envelope_templates
            return Page.from_sized(items, size, next_cursor=start + len(items))

        return self.iterate_pages(build, parse, first_cursor=0)

    async def get_template(
        self, template_id: str, options: RequestOptions | None = None
    ) -> Template:
        spec = self.request(
            "GET", f"/templates/{template_id}", options, operation="docusign.get_template"
        )
        return await self.execute(spec, Template)

    # =========================================================================
    # Envelopes
    # =========================================================================

    async def list_envelopes(
        self,
        from_date: str | None = None,
        status: str | None = None,
        start_position: int = 0,
        count: int | None = None,
        options: RequestOptions | None = None,
    ) -> EnvelopeListResponse:
        spec = self.request(
            "GET",
            "/envelopes",
            options,
            query={
                "start_position": start_position,
                "count": min(self.page_size(count), MAX_PAGE_SIZE),
                "from_date": from_date,
                "status": status,
            },
            operation="docusign.list_envelopes",
        )
        return await self.execute(spec, EnvelopeListResponse)

    def iterate_envelopes(
        self,
        from_date: str | None = None,
        status: str | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[EnvelopeSummary]:
        size = min(self.page_size(page_size), MAX_PAGE_SIZE)

        def build(start: int):
            return self.request(
                "GET",
                "/envelopes",
                query={
                    "start_position": start,
                    "count": size,
                    "from_date": from_date,
                    "status": status,
                },
                operation="docusign.iterate_envelopes",
            )

        def parse(body: Any, start: int) -> Page[EnvelopeSummary]:
            items = self.pipeline.decode(body or {}, EnvelopeListResponse).envelopes
            return Page.from_sized(items, size, next_cursor=start + len(items))

        return self.iterate_pages(build, parse, first_cursor=0)

    async def get_envelope(
        self, envelope_id: str, options: RequestOptions | None = None
    ) -> Envelope:
        spec = self.request(
            "GET", f"/envelopes/{envelope_id}", options, operation="docusign.get_envelope"
        )
        return await self.execute(spec, Envelope)

    async def create_envelope(
        self,
        request: CreateEnvelopeRequest,
        options: RequestOptions | None = None,
    ) -> CreateEnvelopeResponse:
        """Create (and by default send) an envelope from a template or documents."""
        spec = self.request(
            "POST",
            "/envelopes",
            options,
            body=request.to_payload(),
            operation="docusign.create_envelope",
        )
        return await self.execute(spec, CreateEnvelopeResponse)

    async def delete_envelope(self, envelope_id: str, options: RequestOptions | None = None) -> None:
        spec = self.request(
            "DELETE", f"/envelopes/{envelope_id}", options, operation="docusign.delete_envelope"
        )
        await self.execute(spec)

    async def download_envelope_documents(
        self, envelope_id: str, options: RequestOptions | None = None
    ) -> bytes:
        """Combined PDF of all envelope documents."""
        spec = self.request(
            "GET",
            f"/envelopes/{envelope_id}/documents/combined",
            options,
            headers={"Accept": "application/pdf"},
            operation="docusign.download_envelope_documents",
        )
        return await self.execute(spec)


__all__ = ["DocuSignClient", "API_VERSION_PATH"]
