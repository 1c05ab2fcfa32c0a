"""HubSpot CRM integration."""

from integrations.providers.hubspot.auth import (
    DEFAULT_SCOPES,
    HubSpotTokenRefresher,
    parse_hubspot_error,
)
from integrations.providers.hubspot.client import HubSpotClient
from integrations.providers.hubspot.schemas import (
    Contact,
    ContactInput,
    ContactListResponse,
    Deal,
    DealInput,
    DealListResponse,
    DealUpdate,
    Note,
    Owner,
    Pipeline,
    PipelineStage,
    Task,
    TaskInput,
)

__all__ = [
    "HubSpotClient",
    "HubSpotTokenRefresher",
    "parse_hubspot_error",
    "DEFAULT_SCOPES",
    "Contact",
    "ContactInput",
    "ContactListResponse",
    "Deal",
    "DealInput",
    "DealListResponse",
    "DealUpdate",
    "Note",
    "Owner",
    "Pipeline",
    "PipelineStage",
    "Task",
    "TaskInput",
]
