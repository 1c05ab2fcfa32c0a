"""DocuSign eSignature integration."""

from integrations.providers.docusign.auth import (
    DEFAULT_SCOPES,
    DocuSignTokenRefresher,
    parse_docusign_error,
)
from integrations.providers.docusign.client import DocuSignClient
from integrations.providers.docusign.schemas import (
    CreateEnvelopeRequest,
    CreateEnvelopeResponse,
    DocuSignAccount,
    DocuSignUserInfo,
    Envelope,
    EnvelopeDocument,
    EnvelopeListResponse,
    EnvelopeSummary,
    Template,
    TemplateListResponse,
    TemplateRole,
    TemplateSummary,
)

__all__ = [
    "DocuSignClient",
    "DocuSignTokenRefresher",
    "parse_docusign_error",
    "DEFAULT_SCOPES",
    "DocuSignAccount",
    "DocuSignUserInfo",
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
