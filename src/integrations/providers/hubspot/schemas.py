"""
HubSpot CRM v3 payloads.

CRM objects carry their fields in a string-valued "properties" mapping;
envelope keys (createdAt, updatedAt) are camelCase on the wire.
"""

from typing import Any

from pydantic import Field
from pydantic.alias_generators import to_camel

from integrations.providers.base import ProviderModel

DEFAULT_CONTACT_PROPERTIES = (
    "email",
    "firstname",
    "lastname",
    "phone",
    "company",
    "jobtitle",
    "website",
    "address",
    "city",
    "state",
    "zip",
    "country",
    "createdate",
    "lastmodifieddate",
)

DEFAULT_DEAL_PROPERTIES = (
    "dealname",
    "dealstage",
    "pipeline",
    "amount",
    "closedate",
    "hubspot_owner_id",
    "description",
    "createdate",
    "hs_lastmodifieddate",
)


class HubSpotModel(ProviderModel):
    model_config = {"populate_by_name": True, "extra": "allow", "alias_generator": to_camel}


class CrmObject(HubSpotModel):
    id: str
    properties: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
    archived: bool = False


class Contact(CrmObject):
    @property
    def email(self) -> str | None:
        return self.properties.get("email")


class Deal(CrmObject):
    @property
    def name(self) -> str | None:
        return self.properties.get("dealname")

    @property
    def stage(self) -> str | None:
        return self.properties.get("dealstage")


class Note(CrmObject):
    pass


class Task(CrmObject):
    pass


class Owner(HubSpotModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    user_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    archived: bool = False


class PipelineStage(HubSpotModel):
    id: str
    label: str
    display_order: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_closed(self) -> bool:
        return str(self.metadata.get("isClosed", "false")).lower() == "true"


class Pipeline(HubSpotModel):
    id: str
    label: str
    display_order: int = 0
    stages: list[PipelineStage] = Field(default_factory=list)
    archived: bool = False

    def stage(self, stage_id: str) -> PipelineStage | None:
        return next((s for s in self.stages if s.id == stage_id), None)


class PagingNext(HubSpotModel):
    after: str
    link: str | None = None


class Paging(HubSpotModel):
    next: PagingNext | None = None


class ListResponse(HubSpotModel):
    """Envelope shared by CRM list and search endpoints."""

    total: int | None = None
    paging: Paging | None = None

    @property
    def next_after(self) -> str | None:
        if self.paging and self.paging.next:
            return self.paging.next.after
        return None


class ContactListResponse(ListResponse):
    results: list[Contact] = Field(default_factory=list)


class DealListResponse(ListResponse):
    results: list[Deal] = Field(default_factory=list)


class OwnerListResponse(ListResponse):
    results: list[Owner] = Field(default_factory=list)


class PipelineListResponse(HubSpotModel):
    results: list[Pipeline] = Field(default_factory=list)


class ContactInput(ProviderModel):
    """Writable contact properties (HubSpot internal names)."""

    email: str
    firstname: str | None = None
    lastname: str | None = None
    phone: str | None = None
    company: str | None = None
    jobtitle: str | None = None
    website: str | None = None
    hubspot_owner_id: str | None = None


class DealUpdate(ProviderModel):
    """Deal properties for a partial update; unset fields are left alone."""

    dealname: str | None = None
    dealstage: str | None = None
    pipeline: str | None = None
    amount: str | None = None
    closedate: str | None = None
    hubspot_owner_id: str | None = None
    description: str | None = None


class DealInput(DealUpdate):
    dealname: str


class TaskInput(ProviderModel):
    hs_task_subject: str
    hs_task_body: str | None = None
    hs_task_status: str | None = None
    hs_task_priority: str | None = None
    hs_task_type: str | None = None
    hs_timestamp: str | None = None
    hubspot_owner_id: str | None = None


__all__ = [
    "DEFAULT_CONTACT_PROPERTIES",
    "DEFAULT_DEAL_PROPERTIES",
    "CrmObject",
    "Contact",
    "Deal",
    "Note",
    "Task",
    "Owner",
    "Pipeline",
    "PipelineStage",
    "Paging",
    "PagingNext",
    "ListResponse",
    "ContactListResponse",
    "DealListResponse",
    "OwnerListResponse",
    "PipelineListResponse",
    "ContactInput",
    "DealInput",
    "DealUpdate",
    "TaskInput",
]
