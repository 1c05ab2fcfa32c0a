"""PandaDoc document automation integration."""

from integrations.providers.pandadoc.auth import (
    DEFAULT_SCOPES,
    PandaDocTokenRefresher,
    parse_pandadoc_error,
)
from integrations.providers.pandadoc.client import PandaDocClient
from integrations.providers.pandadoc.schemas import (
    Contact,
    ContentLibraryItem,
    ContentLibraryItemDetails,
    CreateDocumentRequest,
    CreateDocumentResponse,
    CreateRecipient,
    Document,
    DocumentContent,
    DocumentListResponse,
    DocumentSummary,
    DocumentToken,
    DownloadLink,
    Folder,
    SendDocumentRequest,
    SendDocumentResponse,
    TemplateDetails,
    TemplateListResponse,
    TemplateSummary,
)

__all__ = [
    "PandaDocClient",
    "PandaDocTokenRefresher",
    "parse_pandadoc_error",
    "DEFAULT_SCOPES",
    "TemplateSummary",
    "TemplateDetails",
    "TemplateListResponse",
    "DocumentSummary",
    "Document",
    "DocumentListResponse",
    "DocumentToken",
    "CreateRecipient",
    "CreateDocumentRequest",
    "CreateDocumentResponse",
    "SendDocumentRequest",
    "SendDocumentResponse",
    "Contact",
    "ContentLibraryItem",
    "ContentLibraryItemDetails",
    "Folder",
    "DocumentContent",
    "DownloadLink",
]
