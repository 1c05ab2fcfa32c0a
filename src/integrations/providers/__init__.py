"""Provider adapters built on the shared request pipeline."""

from typing import Any

from integrations.config import ProviderSettings
from integrations.errors.exceptions import InvalidConfigurationError
from integrations.oauth2.models import Tokens
from integrations.providers.base import ProviderAdapter, ProviderModel
from integrations.providers.docusign import DocuSignClient
from integrations.providers.hubspot import HubSpotClient
from integrations.providers.pandadoc import PandaDocClient
from integrations.providers.quickbooks import QuickBooksClient

PROVIDERS: dict[str, type[ProviderAdapter]] = {
    DocuSignClient.provider_name: DocuSignClient,
    PandaDocClient.provider_name: PandaDocClient,
    HubSpotClient.provider_name: HubSpotClient,
    QuickBooksClient.provider_name: QuickBooksClient,
}


def create_client(
    provider_settings: ProviderSettings,
    tokens: Tokens | None = None,
    **kwargs: Any,
) -> ProviderAdapter:
    """
    Build the adapter registered under provider_settings.name.

    Without tokens, only a PandaDoc API key can authenticate the client.

    Args:
        provider_settings: Loaded provider configuration
        tokens: Stored credentials and routing fields
        **kwargs: Passed to the adapter (on_token_refresh, session, clock)

    Raises:
        InvalidConfigurationError: Unknown provider or no usable credentials
    """
    name = provider_settings.name.lower()
    client_cls = PROVIDERS.get(name)
    if client_cls is None:
        raise InvalidConfigurationError(
            f"Unknown provider '{provider_settings.name}' (known: {sorted(PROVIDERS)})"
        )

    client_settings = provider_settings.client_settings()
    if tokens is None:
        if client_cls is PandaDocClient and provider_settings.api_key:
            kwargs.pop("on_token_refresh", None)
            return PandaDocClient.with_api_key(
                provider_settings.api_key, settings=client_settings, **kwargs
            )
        raise InvalidConfigurationError(f"{name}: stored tokens are required")

    return client_cls(
        tokens, provider_settings.oauth_config(), settings=client_settings, **kwargs
    )


__all__ = [
    "ProviderAdapter",
    "ProviderModel",
    "DocuSignClient",
    "PandaDocClient",
    "HubSpotClient",
    "QuickBooksClient",
    "PROVIDERS",
    "create_client",
]
