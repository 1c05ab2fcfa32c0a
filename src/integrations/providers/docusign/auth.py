"""DocuSign OAuth2 endpoints and token refresher."""

from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError, default_parse_api_error
from integrations.oauth2.models import Environment
from integrations.oauth2.refresher import ClientAuthMethod, OAuth2TokenRefresher
from integrations.types import Clock

OAUTH_HOSTS = {
    Environment.SANDBOX: "https://account-d.docusign.com",
    Environment.PRODUCTION: "https://account.docusign.com",
}

SCOPE_SIGNATURE = "signature"
SCOPE_EXTENDED = "extended"
SCOPE_IMPERSONATION = "impersonation"
DEFAULT_SCOPES = (SCOPE_SIGNATURE, SCOPE_EXTENDED)

# errorCode values that mean the bearer token itself was rejected
AUTH_ERROR_CODES = frozenset(
    {
        "USER_AUTHENTICATION_FAILED",
        "AUTHORIZATION_INVALID_TOKEN",
        "PARTNER_AUTHENTICATION_FAILED",
    }
)


def oauth_url(environment: Environment, path: str) -> str:
    return f"{OAUTH_HOSTS[environment]}{path}"


def parse_docusign_error(payload: Any) -> ParsedApiError:
    """Parse DocuSign {errorCode, message} bodies; OAuth errors use the default shape."""
    if isinstance(payload, dict) and "errorCode" in payload:
        code = str(payload["errorCode"])
        return ParsedApiError(
            message=str(payload.get("message") or code),
            code=code,
            is_auth=code in AUTH_ERROR_CODES,
        )
    return default_parse_api_error(payload)


class DocuSignTokenRefresher(OAuth2TokenRefresher):
    """DocuSign token endpoint (HTTP Basic client credentials)."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(
            "docusign",
            token_url={env: oauth_url(env, "/oauth/token") for env in Environment},
            auth_method=ClientAuthMethod.BASIC,
            authorize_url={env: oauth_url(env, "/oauth/auth") for env in Environment},
            revoke_url={env: oauth_url(env, "/oauth/revoke") for env in Environment},
            default_scopes=DEFAULT_SCOPES,
            parse_api_error=parse_docusign_error,
            session=session,
            clock=clock,
        )


__all__ = [
    "DocuSignTokenRefresher",
    "parse_docusign_error",
    "oauth_url",
    "OAUTH_HOSTS",
    "DEFAULT_SCOPES",
]
