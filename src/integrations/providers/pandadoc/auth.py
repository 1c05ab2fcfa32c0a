"""PandaDoc OAuth2 endpoints and token refresher."""

from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError, default_parse_api_error
from integrations.oauth2.refresher import ClientAuthMethod, OAuth2TokenRefresher
from integrations.types import Clock

API_BASE_URL = "https://api.pandadoc.com/public/v1"
AUTHORIZE_URL = "https://app.pandadoc.com/oauth2/authorize"
TOKEN_URL = "https://api.pandadoc.com/oauth2/access_token"
REVOKE_URL = "https://api.pandadoc.com/oauth2/revoke"

SCOPE_DOCUMENTS = "read+documents"
SCOPE_TEMPLATES = "read+templates"
SCOPE_CONTACTS = "read+contacts"
SCOPE_CONTENT = "read+content"
SCOPE_USER = "read+user"
DEFAULT_SCOPES = (SCOPE_DOCUMENTS, SCOPE_TEMPLATES, SCOPE_CONTACTS, SCOPE_CONTENT, SCOPE_USER)

# Error "type" values PandaDoc uses for rejected credentials
AUTH_ERROR_TYPES = frozenset({"authentication_error", "authorization_error", "invalid_token"})


def parse_pandadoc_error(payload: Any) -> ParsedApiError:
    """Parse PandaDoc {type, detail, errors} bodies."""
    if isinstance(payload, dict) and ("type" in payload or "detail" in payload):
        error_type = payload.get("type")
        detail = payload.get("detail")
        if isinstance(detail, dict | list):
            detail = str(detail)
        message = detail or error_type or ""
        errors = payload.get("errors")
        if not detail and isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                message = first.get("message") or first.get("detail") or message
        return ParsedApiError(
            message=str(message),
            code=str(error_type) if error_type else None,
            is_auth=error_type in AUTH_ERROR_TYPES,
        )
    return default_parse_api_error(payload)


class PandaDocTokenRefresher(OAuth2TokenRefresher):
    """PandaDoc token endpoint (client credentials in the form body)."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(
            "pandadoc",
            token_url=TOKEN_URL,
            auth_method=ClientAuthMethod.BODY,
            authorize_url=AUTHORIZE_URL,
            revoke_url=REVOKE_URL,
            default_scopes=DEFAULT_SCOPES,
            parse_api_error=parse_pandadoc_error,
            session=session,
            clock=clock,
        )


__all__ = [
    "PandaDocTokenRefresher",
    "parse_pandadoc_error",
    "API_BASE_URL",
    "DEFAULT_SCOPES",
]
