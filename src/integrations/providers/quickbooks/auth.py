"""Intuit (QuickBooks Online) OAuth2 endpoints and token refresher."""

from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError, default_parse_api_error
from integrations.oauth2.models import OAuthConfig
from integrations.oauth2.refresher import ClientAuthMethod, OAuth2TokenRefresher
from integrations.types import Clock

AUTHORIZE_URL = "https://appcenter.intuit.com/connect/oauth2"
TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
REVOKE_URL = "https://developer.api.intuit.com/v2/oauth2/tokens/revoke"

SCOPE_ACCOUNTING = "com.intuit.quickbooks.accounting"
SCOPE_PAYMENT = "com.intuit.quickbooks.payment"
SCOPE_OPENID = "openid"
SCOPE_PROFILE_EMAIL = "profile email"
DEFAULT_SCOPES = (SCOPE_ACCOUNTING, SCOPE_OPENID, SCOPE_PROFILE_EMAIL)

# Fault code Intuit returns for a rejected or expired bearer token
AUTHENTICATION_FAILED_CODE = "3200"


def parse_quickbooks_error(payload: Any) -> ParsedApiError:
    """Parse {"Fault": {"Error": [{"Message", "Detail", "code"}], "type"}} bodies."""
    fault = payload.get("Fault") if isinstance(payload, dict) else None
    if not isinstance(fault, dict):
        return default_parse_api_error(payload)

    errors = fault.get("Error") or [{}]
    first = errors[0]
    code = first.get("code")
    message = first.get("Message") or "QuickBooks API error"
    detail = first.get("Detail")
    if detail and detail != message:
        message = f"{message}: {detail}"
    return ParsedApiError(
        message=message,
        code=str(code) if code is not None else None,
        is_auth=str(code) == AUTHENTICATION_FAILED_CODE
        or str(fault.get("type", "")).upper() == "AUTHENTICATION",
    )


class QuickBooksTokenRefresher(OAuth2TokenRefresher):
    """
    Intuit token endpoint (HTTP Basic client credentials).

    Token responses carry x_refresh_token_expires_in, and the realm
    (company) id arrives on the authorization redirect; pass it as
    routing={"realm_id": ...} to exchange_code.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(
            "quickbooks",
            token_url=TOKEN_URL,
            auth_method=ClientAuthMethod.BASIC,
            authorize_url=AUTHORIZE_URL,
            revoke_url=REVOKE_URL,
            default_scopes=DEFAULT_SCOPES,
            parse_api_error=parse_quickbooks_error,
            session=session,
            clock=clock,
        )

    def _revoke_request(
        self, config: OAuthConfig, token: str, token_type_hint: str | None
    ) -> dict[str, Any]:
        # Intuit takes a JSON body here, unlike its form-encoded token endpoint
        return {
            "json": {"token": token},
            "auth": aiohttp.BasicAuth(config.client_id, config.client_secret),
        }


__all__ = [
    "QuickBooksTokenRefresher",
    "parse_quickbooks_error",
    "DEFAULT_SCOPES",
]
