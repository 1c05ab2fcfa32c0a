"""PandaDoc public API payloads (snake_case on the wire)."""

from typing import Any

from pydantic import Field

from integrations.providers.base import ProviderModel

# Document statuses as returned by the API; list filters drop the prefix
STATUS_DRAFT = "document.draft"
STATUS_SENT = "document.sent"
STATUS_COMPLETED = "document.completed"
STATUS_VOIDED = "document.voided"
STATUS_DECLINED = "document.declined"


class PandaDocUser(ProviderModel):
    id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    membership_id: str | None = None


class TemplateRole(ProviderModel):
    id: str | None = None
    name: str
    signing_order: int | None = None


class DocumentToken(ProviderModel):
    name: str
    value: Any = None


class TemplateSummary(ProviderModel):
    id: str
    name: str
    date_created: str | None = None
    date_modified: str | None = None
    version: str | None = None
    tags: list[str] = Field(default_factory=list)


class TemplateDetails(TemplateSummary):
    roles: list[TemplateRole] = Field(default_factory=list)
    tokens: list[DocumentToken] = Field(default_factory=list)
    fields: list[dict[str, Any]] = Field(default_factory=list)
    content_placeholders: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class TemplateListResponse(ProviderModel):
    results: list[TemplateSummary] = Field(default_factory=list)


class Recipient(ProviderModel):
    id: str | None = None
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    type: str | None = None
    signing_order: int | None = None
    has_completed: bool | None = None


class DocumentSummary(ProviderModel):
    id: str
    name: str | None = None
    status: str
    date_created: str | None = None
    date_modified: str | None = None
    date_completed: str | None = None
    expiration_date: str | None = None
    version: str | None = None


class Document(DocumentSummary):
    recipients: list[Recipient] = Field(default_factory=list)
    tokens: list[DocumentToken] = Field(default_factory=list)
    fields: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None
    grand_total: dict[str, Any] | None = None

    @property
    def is_draft(self) -> bool:
        return self.status == STATUS_DRAFT


class DocumentListResponse(ProviderModel):
    results: list[DocumentSummary] = Field(default_factory=list)


class CreateRecipient(ProviderModel):
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    signing_order: int | None = None


class CreateDocumentRequest(ProviderModel):
    name: str
    template_uuid: str
    folder_uuid: str | None = None
    recipients: list[CreateRecipient]
    tokens: list[DocumentToken] | None = None
    fields: dict[str, Any] | None = None
    metadata: dict[str, str] | None = None
    tags: list[str] | None = None
    parse_form_fields: bool | None = None


class CreateDocumentResponse(ProviderModel):
    id: str
    uuid: str | None = None
    name: str | None = None
    status: str
    date_created: str | None = None
    date_modified: str | None = None


class SendDocumentRequest(ProviderModel):
    message: str | None = None
    subject: str | None = None
    silent: bool | None = None


class SendDocumentResponse(DocumentSummary):
    recipients: list[Recipient] = Field(default_factory=list)


class Contact(ProviderModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    job_title: str | None = None
    phone: str | None = None


class ContactListResponse(ProviderModel):
    results: list[Contact] = Field(default_factory=list)


class ContentLibraryItem(ProviderModel):
    id: str
    name: str
    date_created: str | None = None
    date_modified: str | None = None
    created_by: PandaDocUser | None = None
    folder_uuid: str | None = None


class ContentLibraryItemDetails(ContentLibraryItem):
    roles: list[TemplateRole] = Field(default_factory=list)
    tokens: list[DocumentToken] = Field(default_factory=list)
    fields: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class ContentLibraryItemListResponse(ProviderModel):
    results: list[ContentLibraryItem] = Field(default_factory=list)


class Folder(ProviderModel):
    uuid: str
    name: str
    date_created: str | None = None
    date_modified: str | None = None
    created_by: PandaDocUser | None = None
    parent_uuid: str | None = None
    folder_count: int | None = None
    document_count: int | None = None


class FolderListResponse(ProviderModel):
    results: list[Folder] = Field(default_factory=list)


class DocumentContent(ProviderModel):
    """Rendered document structure: pages of positioned blocks."""

    uuid: str | None = None
    name: str | None = None
    pages: list[dict[str, Any]] = Field(default_factory=list)


class DownloadLink(ProviderModel):
    link: str
    expires_at: str | None = None


__all__ = [
    "STATUS_DRAFT",
    "STATUS_SENT",
    "STATUS_COMPLETED",
    "STATUS_VOIDED",
    "STATUS_DECLINED",
    "PandaDocUser",
    "TemplateRole",
    "DocumentToken",
    "TemplateSummary",
    "TemplateDetails",
    "TemplateListResponse",
    "Recipient",
    "DocumentSummary",
    "Document",
    "DocumentListResponse",
    "CreateRecipient",
    "CreateDocumentRequest",
    "CreateDocumentResponse",
    "SendDocumentRequest",
    "SendDocumentResponse",
    "Contact",
    "ContactListResponse",
    "ContentLibraryItem",
    "ContentLibraryItemDetails",
    "ContentLibraryItemListResponse",
    "Folder",
    "FolderListResponse",
    "DocumentContent",
    "DownloadLink",
]
