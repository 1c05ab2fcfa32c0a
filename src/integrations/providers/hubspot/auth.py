"""HubSpot OAuth2 endpoints and token refresher."""

import json
import logging
from typing import Any

import aiohttp

from integrations.errors.classifiers import (
    ParsedApiError,
    classify_response,
    default_parse_api_error,
)
from integrations.errors.exceptions import TransportError
from integrations.oauth2.models import OAuthConfig
from integrations.oauth2.refresher import ClientAuthMethod, OAuth2TokenRefresher
from integrations.types import Clock

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.hubapi.com"
AUTHORIZE_URL = "https://app.hubspot.com/oauth/authorize"
TOKEN_URL = f"{API_BASE_URL}/oauth/v1/token"

SCOPE_CONTACTS_READ = "crm.objects.contacts.read"
SCOPE_CONTACTS_WRITE = "crm.objects.contacts.write"
SCOPE_COMPANIES_READ = "crm.objects.companies.read"
SCOPE_DEALS_READ = "crm.objects.deals.read"
SCOPE_DEALS_WRITE = "crm.objects.deals.write"
SCOPE_OWNERS_READ = "crm.objects.owners.read"
DEFAULT_SCOPES = (
    SCOPE_CONTACTS_READ,
    SCOPE_CONTACTS_WRITE,
    SCOPE_COMPANIES_READ,
    SCOPE_DEALS_READ,
    SCOPE_DEALS_WRITE,
    SCOPE_OWNERS_READ,
)

# HubSpot error categories for rejected bearer tokens
AUTH_CATEGORIES = frozenset({"INVALID_AUTHENTICATION", "EXPIRED_AUTHENTICATION"})


def parse_hubspot_error(payload: Any) -> ParsedApiError:
    """Parse HubSpot {status, message, correlationId, category} bodies."""
    if isinstance(payload, dict) and "category" in payload:
        category = payload.get("category")
        return ParsedApiError(
            message=str(payload.get("message") or category),
            code=str(category) if category else None,
            is_auth=category in AUTH_CATEGORIES,
        )
    return default_parse_api_error(payload)


class HubSpotTokenRefresher(OAuth2TokenRefresher):
    """HubSpot token endpoint (client credentials in the form body)."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(
            "hubspot",
            token_url=TOKEN_URL,
            auth_method=ClientAuthMethod.BODY,
            authorize_url=AUTHORIZE_URL,
            default_scopes=DEFAULT_SCOPES,
            parse_api_error=parse_hubspot_error,
            session=session,
            clock=clock,
        )

    async def get_token_info(self, access_token: str) -> dict[str, Any]:
        """
        Metadata for an access token (hub_id, user, scopes).

        Raises:
            ApiError: If HubSpot rejects the token
        """
        session = await self._ensure_session()
        try:
            async with session.get(
                f"{API_BASE_URL}/oauth/v1/access-tokens/{access_token}",
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                status = response.status
                headers = dict(response.headers)
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(
                f"Token info endpoint unreachable: {e}", provider=self.provider_name, cause=e
            ) from e

        if not 200 <= status < 300:
            raise classify_response(
                status,
                headers,
                body,
                provider=self.provider_name,
                parse_api_error=parse_hubspot_error,
            )
        return json.loads(body)

    async def revoke(
        self,
        config: OAuthConfig,
        token: str,
        token_type_hint: str | None = None,
    ) -> None:
        """
        Delete a refresh token.

        Failures are logged and not raised so that disconnecting an
        integration is never blocked by the provider.
        """
        session = await self._ensure_session()
        try:
            async with session.delete(
                f"{API_BASE_URL}/oauth/v1/refresh-tokens/{token}",
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                status = response.status
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(
                "Failed to revoke refresh token",
                extra={"provider": self.provider_name, "error_message": str(e)[:200]},
            )
            return

        if not 200 <= status < 300:
            logger.warning(
                "Failed to revoke refresh token",
                extra={
                    "provider": self.provider_name,
                    "http_status": status,
                    "response_body": body[:500].decode("utf-8", errors="replace"),
                },
            )
            return
        logger.info("Token revoked", extra={"provider": self.provider_name})


__all__ = [
    "HubSpotTokenRefresher",
    "parse_hubspot_error",
    "API_BASE_URL",
    "DEFAULT_SCOPES",
]
