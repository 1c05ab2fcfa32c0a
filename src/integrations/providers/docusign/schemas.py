"""
DocuSign eSignature REST API payloads.

Wire names are camelCase; models expose snake_case attributes. Counts in
list responses are strings on the wire and are kept as such.
"""

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from integrations.providers.base import ProviderModel


class DocuSignModel(ProviderModel):
    model_config = {"populate_by_name": True, "extra": "allow", "alias_generator": to_camel}


# =============================================================================
# Accounts (OAuth userinfo, snake_case on the wire)
# =============================================================================


class DocuSignAccount(BaseModel):
    account_id: str
    account_name: str | None = None
    is_default: bool = False
    base_uri: str


class DocuSignUserInfo(BaseModel):
    sub: str
    name: str | None = None
    email: str | None = None
    accounts: list[DocuSignAccount] = Field(default_factory=list)

    @property
    def default_account(self) -> DocuSignAccount | None:
        for account in self.accounts:
            if account.is_default:
                return account
        return self.accounts[0] if self.accounts else None


# =============================================================================
# Templates
# =============================================================================


class UserRef(DocuSignModel):
    user_name: str | None = None
    user_id: str | None = None
    email: str | None = None


class TemplateSummary(DocuSignModel):
    template_id: str
    name: str | None = None
    description: str | None = None
    shared: str | None = None
    created: str | None = None
    last_modified: str | None = None
    page_count: int | None = None
    folder_name: str | None = None
    folder_id: str | None = None
    owner: UserRef | None = None


class Template(TemplateSummary):
    email_subject: str | None = None
    email_blurb: str | None = None
    recipients: dict[str, Any] | None = None
    documents: list[dict[str, Any]] = Field(default_factory=list)
    custom_fields: dict[str, Any] | None = None


class TemplateListResponse(DocuSignModel):
    envelope_templates: list[TemplateSummary] = Field(default_factory=list)
    result_set_size: str | None = None
    total_set_size: str | None = None
    start_position: str | None = None
    end_position: str | None = None
    next_uri: str | None = None


# =============================================================================
# Envelopes
# =============================================================================


class EnvelopeSummary(DocuSignModel):
    envelope_id: str
    status: str
    status_changed_date_time: str | None = None
    email_subject: str | None = None
    email_blurb: str | None = None
    created_date_time: str | None = None
    sent_date_time: str | None = None
    delivered_date_time: str | None = None
    completed_date_time: str | None = None
    voided_date_time: str | None = None
    declined_date_time: str | None = None
    sender: UserRef | None = None


class Envelope(EnvelopeSummary):
    recipients: dict[str, Any] | None = None
    documents: list[dict[str, Any]] = Field(default_factory=list)
    custom_fields: dict[str, Any] | None = None
    notification: dict[str, Any] | None = None


class EnvelopeListResponse(DocuSignModel):
    envelopes: list[EnvelopeSummary] = Field(default_factory=list)
    result_set_size: str | None = None
    total_set_size: str | None = None
    start_position: str | None = None
    end_position: str | None = None
    next_uri: str | None = None


class TemplateRole(DocuSignModel):
    email: str
    name: str
    role_name: str
    client_user_id: str | None = None
    tabs: dict[str, Any] | None = None


class EnvelopeDocument(DocuSignModel):
    document_base64: str | None = None
    name: str
    file_extension: str
    document_id: str


class CreateEnvelopeRequest(DocuSignModel):
    email_subject: str
    email_blurb: str | None = None
    template_id: str | None = None
    template_roles: list[TemplateRole] | None = None
    documents: list[EnvelopeDocument] | None = None
    recipients: dict[str, Any] | None = None
    status: str = "sent"
    custom_fields: dict[str, Any] | None = None
    event_notification: dict[str, Any] | None = None


class CreateEnvelopeResponse(DocuSignModel):
    envelope_id: str
    uri: str | None = None
    status_date_time: str | None = None
    status: str | None = None


__all__ = [
    "DocuSignAccount",
    "DocuSignUserInfo",
    "UserRef",
    "TemplateSummary",
    "Template",
    "TemplateListResponse",
    "EnvelopeSummary",
    "Envelope",
    "EnvelopeListResponse",
    "TemplateRole",
    "EnvelopeDocument",
    "CreateEnvelopeRequest",
    "CreateEnvelopeResponse",
]
