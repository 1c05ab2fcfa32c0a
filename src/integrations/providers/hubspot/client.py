"""HubSpot CRM v3 API client."""

import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError
from integrations.http.pagination import Page
from integrations.http.request import RequestOptions
from integrations.providers.base import ProviderAdapter
from integrations.providers.hubspot.auth import (
    API_BASE_URL,
    HubSpotTokenRefresher,
    parse_hubspot_error,
)
from integrations.providers.hubspot.schemas import (
    DEFAULT_CONTACT_PROPERTIES,
    DEFAULT_DEAL_PROPERTIES,
    Contact,
    ContactInput,
    ContactListResponse,
    Deal,
    DealInput,
    DealListResponse,
    DealUpdate,
    Note,
    Owner,
    OwnerListResponse,
    Pipeline,
    PipelineListResponse,
    Task,
    TaskInput,
)
from integrations.types import Clock

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# HubSpot-defined association labels
NOTE_TO_CONTACT = "note_to_contact"
NOTE_TO_DEAL = "note_to_deal"
TASK_TO_CONTACT = "task_to_contact"
TASK_TO_DEAL = "task_to_deal"
CONTACT_TO_DEAL = "contact_to_deal"


class HubSpotClient(ProviderAdapter):
    """
    Client for the HubSpot CRM v3 API.

    Usage:
        async with HubSpotClient(tokens, oauth_config, on_token_refresh=save) as client:
            contact, created = await client.find_or_create_contact("a@example.com")
    """

    provider_name = "hubspot"
    default_page_size = 100

    @classmethod
    def create_refresher(
        cls,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> HubSpotTokenRefresher:
        return HubSpotTokenRefresher(session=session, clock=clock)

    def base_url(self) -> str:
        return API_BASE_URL

    def parse_api_error(self, payload: Any) -> ParsedApiError:
        return parse_hubspot_error(payload)

    def _now_iso(self) -> str:
        return self.clock.now().isoformat().replace("+00:00", "Z")

    # =========================================================================
    # Contacts
    # =========================================================================

    async def list_contacts(
        self,
        limit: int | None = None,
        after: str | None = None,
        properties: Iterable[str] = DEFAULT_CONTACT_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> ContactListResponse:
        spec = self.request(
            "GET",
            "/crm/v3/objects/contacts",
            options,
            query={
                "limit": min(self.page_size(limit), MAX_PAGE_SIZE),
                "after": after,
                "properties": ",".join(properties),
            },
            operation="hubspot.list_contacts",
        )
        return await self.execute(spec, ContactListResponse)

    def iterate_contacts(
        self,
        page_size: int | None = None,
        properties: Iterable[str] = DEFAULT_CONTACT_PROPERTIES,
    ) -> AsyncIterator[Contact]:
        """Iterate all contacts following paging.next.after."""
        size = min(self.page_size(page_size), MAX_PAGE_SIZE)
        fields = ",".join(properties)

        def build(after: str | None):
            return self.request(
                "GET",
                "/crm/v3/objects/contacts",
                query={"limit": size, "after": after, "properties": fields},
                operation="hubspot.iterate_contacts",
            )

        def parse(body: Any, after: str | None) -> Page[Contact]:
            response = self.pipeline.decode(body or {}, ContactListResponse)
            next_after = response.next_after
            return Page(response.results, has_more=next_after is not None, next_cursor=next_after)

        return self.iterate_pages(build, parse)

    async def get_contact(
        self,
        contact_id: str,
        properties: Iterable[str] = DEFAULT_CONTACT_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> Contact:
        spec = self.request(
            "GET",
            f"/crm/v3/objects/contacts/{contact_id}",
            options,
            query={"properties": ",".join(properties)},
            operation="hubspot.get_contact",
        )
        return await self.execute(spec, Contact)

    async def search_contacts(
        self,
        filter_groups: list[dict[str, Any]],
        limit: int | None = None,
        after: str | None = None,
        properties: Iterable[str] = DEFAULT_CONTACT_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> ContactListResponse:
        body: dict[str, Any] = {
            "filterGroups": filter_groups,
            "properties": list(properties),
            "limit": min(self.page_size(limit), MAX_PAGE_SIZE),
        }
        if after:
            body["after"] = after
        spec = self.request(
            "POST",
            "/crm/v3/objects/contacts/search",
            options,
            body=body,
            operation="hubspot.search_contacts",
        )
        return await self.execute(spec, ContactListResponse)

    async def get_contact_by_email(
        self,
        email: str,
        properties: Iterable[str] = DEFAULT_CONTACT_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> Contact | None:
        """First contact whose email matches exactly, or None."""
        filters = [{"filters": [{"propertyName": "email", "operator": "EQ", "value": email}]}]
        response = await self.search_contacts(filters, limit=1, properties=properties, options=options)
        return response.results[0] if response.results else None

    async def create_contact(
        self, contact: ContactInput, options: RequestOptions | None = None
    ) -> Contact:
        spec = self.request(
            "POST",
            "/crm/v3/objects/contacts",
            options,
            body={"properties": contact.to_payload()},
            operation="hubspot.create_contact",
        )
        return await self.execute(spec, Contact)

    async def find_or_create_contact(
        self,
        email: str,
        firstname: str | None = None,
        lastname: str | None = None,
        options: RequestOptions | None = None,
        **properties: str,
    ) -> tuple[Contact, bool]:
        """
        Look up a contact by email and create it when missing.

        Returns:
            (contact, created)
        """
        existing = await self.get_contact_by_email(email, options=options)
        if existing is not None:
            return existing, False

        contact = await self.create_contact(
            ContactInput(email=email, firstname=firstname, lastname=lastname, **properties),
            options,
        )
        logger.info(
            "Contact created",
            extra={"provider": self.provider_name, "resource_id": contact.id},
        )
        return contact, True

    # =========================================================================
    # Deals
    # =========================================================================

    async def list_deals(
        self,
        limit: int | None = None,
        after: str | None = None,
        properties: Iterable[str] = DEFAULT_DEAL_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> DealListResponse:
        spec = self.request(
            "GET",
            "/crm/v3/objects/deals",
            options,
            query={
                "limit": min(self.page_size(limit), MAX_PAGE_SIZE),
                "after": after,
                "properties": ",".join(properties),
            },
            operation="hubspot.list_deals",
        )
        return await self.execute(spec, DealListResponse)

    def iterate_deals(
        self,
        page_size: int | None = None,
        properties: Iterable[str] = DEFAULT_DEAL_PROPERTIES,
    ) -> AsyncIterator[Deal]:
        size = min(self.page_size(page_size), MAX_PAGE_SIZE)
        fields = ",".join(properties)

        def build(after: str | None):
            return self.request(
                "GET",
                "/crm/v3/objects/deals",
                query={"limit": size, "after": after, "properties": fields},
                operation="hubspot.iterate_deals",
            )

        def parse(body: Any, after: str | None) -> Page[Deal]:
            response = self.pipeline.decode(body or {}, DealListResponse)
            next_after = response.next_after
            return Page(response.results, has_more=next_after is not None, next_cursor=next_after)

        return self.iterate_pages(build, parse)

    async def get_deal(
        self,
        deal_id: str,
        properties: Iterable[str] = DEFAULT_DEAL_PROPERTIES,
        options: RequestOptions | None = None,
    ) -> Deal:
        spec = self.request(
            "GET",
            f"/crm/v3/objects/deals/{deal_id}",
            options,
            query={"properties": ",".join(properties)},
            operation="hubspot.get_deal",
        )
        return await self.execute(spec, Deal)

    async def create_deal(self, deal: DealInput, options: RequestOptions | None = None) -> Deal:
        spec = self.request(
            "POST",
            "/crm/v3/objects/deals",
            options,
            body={"properties": deal.to_payload()},
            operation="hubspot.create_deal",
        )
        created = await self.execute(spec, Deal)
        logger.info(
            "Deal created",
            extra={"provider": self.provider_name, "resource_id": created.id},
        )
        return created

    async def update_deal(
        self,
        deal_id: str,
        changes: DealUpdate,
        options: RequestOptions | None = None,
    ) -> Deal:
        """Patch only the properties set on changes."""
        spec = self.request(
            "PATCH",
            f"/crm/v3/objects/deals/{deal_id}",
            options,
            body={"properties": changes.to_payload()},
            operation="hubspot.update_deal",
        )
        return await self.execute(spec, Deal)

    # =========================================================================
    # Engagements and associations
    # =========================================================================

    async def create_association(
        self,
        from_object_type: str,
        from_object_id: str,
        to_object_type: str,
        to_object_id: str,
        association_type: str,
        options: RequestOptions | None = None,
    ) -> None:
        spec = self.request(
            "PUT",
            f"/crm/v3/objects/{from_object_type}/{from_object_id}"
            f"/associations/{to_object_type}/{to_object_id}/{association_type}",
            options,
            operation="hubspot.create_association",
        )
        await self.execute(spec)

    async def associate_contact_with_deal(
        self, contact_id: str, deal_id: str, options: RequestOptions | None = None
    ) -> None:
        await self.create_association(
            "contacts", contact_id, "deals", deal_id, CONTACT_TO_DEAL, options
        )

    async def _create_task(
        self,
        to_object_type: str,
        to_object_id: str,
        association_type: str,
        task: TaskInput,
        options: RequestOptions | None,
    ) -> Task:
        properties = task.to_payload()
        properties.setdefault("hs_timestamp", self._now_iso())
        spec = self.request(
            "POST",
            "/crm/v3/objects/tasks",
            options,
            body={"properties": properties},
            operation="hubspot.create_task",
        )
        created = await self.execute(spec, Task)
        await self.create_association(
            "tasks", created.id, to_object_type, to_object_id, association_type, options
        )
        return created

    async def _create_note(
        self,
        to_object_type: str,
        to_object_id: str,
        association_type: str,
        note_body: str,
        options: RequestOptions | None,
    ) -> Note:
        spec = self.request(
            "POST",
            "/crm/v3/objects/notes",
            options,
            body={"properties": {"hs_note_body": note_body, "hs_timestamp": self._now_iso()}},
            operation="hubspot.create_note",
        )
        note = await self.execute(spec, Note)
        await self.create_association(
            "notes", note.id, to_object_type, to_object_id, association_type, options
        )
        return note

    async def create_task_for_contact(
        self,
        contact_id: str,
        task: TaskInput,
        options: RequestOptions | None = None,
    ) -> Task:
        """Create a task and associate it with a contact."""
        return await self._create_task("contacts", contact_id, TASK_TO_CONTACT, task, options)

    async def create_task_for_deal(
        self,
        deal_id: str,
        task: TaskInput,
        options: RequestOptions | None = None,
    ) -> Task:
        """Create a task and associate it with a deal."""
        return await self._create_task("deals", deal_id, TASK_TO_DEAL, task, options)

    async def add_note_to_contact(
        self,
        contact_id: str,
        note_body: str,
        options: RequestOptions | None = None,
    ) -> Note:
        """Create a note and associate it with a contact."""
        return await self._create_note("contacts", contact_id, NOTE_TO_CONTACT, note_body, options)

    async def add_note_to_deal(
        self,
        deal_id: str,
        note_body: str,
        options: RequestOptions | None = None,
    ) -> Note:
        """Create a note and associate it with a deal."""
        return await self._create_note("deals", deal_id, NOTE_TO_DEAL, note_body, options)

    # =========================================================================
    # Owners and pipelines
    # =========================================================================

    async def list_owners(
        self,
        limit: int | None = None,
        after: str | None = None,
        email: str | None = None,
        options: RequestOptions | None = None,
    ) -> OwnerListResponse:
        spec = self.request(
            "GET",
            "/crm/v3/owners",
            options,
            query={
                "limit": min(self.page_size(limit), MAX_PAGE_SIZE),
                "after": after,
                "email": email,
            },
            operation="hubspot.list_owners",
        )
        return await self.execute(spec, OwnerListResponse)

    async def get_owner_by_email(
        self, email: str, options: RequestOptions | None = None
    ) -> Owner | None:
        """
        Owner whose email matches, or None.

        The owners endpoint filters by email server-side; the match is
        re-checked case-insensitively since HubSpot stores emails as entered.
        """
        response = await self.list_owners(email=email, options=options)
        wanted = email.lower()
        return next(
            (owner for owner in response.results if (owner.email or "").lower() == wanted),
            None,
        )

    async def list_deal_pipelines(
        self, options: RequestOptions | None = None
    ) -> list[Pipeline]:
        spec = self.request(
            "GET",
            "/crm/v3/pipelines/deals",
            options,
            operation="hubspot.list_deal_pipelines",
        )
        response = await self.execute(spec, PipelineListResponse)
        return response.results

    async def get_deal_pipeline(
        self, pipeline_id: str, options: RequestOptions | None = None
    ) -> Pipeline:
        spec = self.request(
            "GET",
            f"/crm/v3/pipelines/deals/{pipeline_id}",
            options,
            operation="hubspot.get_deal_pipeline",
        )
        return await self.execute(spec, Pipeline)


__all__ = ["HubSpotClient", "MAX_PAGE_SIZE"]
