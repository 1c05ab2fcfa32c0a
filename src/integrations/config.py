"""Integration client configuration from YAML and environment.

Loads from an integrations.yaml file shaped as:

    defaults:
      timeout_seconds: 30
      max_retries: 3
    providers:
      hubspot:
        client_id: ${HUBSPOT_CLIENT_ID}
        client_secret: ${HUBSPOT_CLIENT_SECRET}
        redirect_uri: https://app.example.com/oauth/hubspot
      quickbooks:
        environment: ${QUICKBOOKS_ENVIRONMENT:-production}

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax. A .env file next to the config (or in the
working directory) is loaded first. All timing values are in seconds.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from integrations.http.settings import DEFAULT_TIMEOUT_SECONDS, ClientSettings
from integrations.oauth2.models import Environment, OAuthConfig
from integrations.resilience.retry import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("integrations.yaml")

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return ENV_VAR_PATTERN.sub(replacer, data)
    else:
        return data


def _is_unresolved(value: Any) -> bool:
    # ${VAR} left in place because VAR is not set
    return isinstance(value, str) and ENV_VAR_PATTERN.fullmatch(value) is not None


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@dataclass
class ProviderSettings:
    """
    Credentials and transport settings for one provider.

    Secrets should come from the environment (${VAR} in YAML or from_env).
    """

    name: str
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    redirect_uri: str = ""
    environment: Environment = Environment.PRODUCTION
    api_key: str | None = field(default=None, repr=False)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay: float = DEFAULT_INITIAL_DELAY
    max_retry_delay: float = DEFAULT_MAX_DELAY
    refresh_buffer_seconds: float = 60.0
    page_size: int | None = None

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        if not isinstance(self.environment, Environment):
            self.environment = Environment(str(self.environment).lower())
        self.timeout_seconds = float(self.timeout_seconds)
        self.max_retries = int(self.max_retries)
        self.initial_retry_delay = float(self.initial_retry_delay)
        self.max_retry_delay = float(self.max_retry_delay)
        self.refresh_buffer_seconds = float(self.refresh_buffer_seconds)
        if self.page_size in ("", None):
            self.page_size = None
        else:
            self.page_size = int(self.page_size)
        self.api_key = self.api_key or None

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "ProviderSettings":
        known = {f for f in cls.__dataclass_fields__ if f != "name"}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(
                "Ignoring unknown provider settings",
                extra={"provider": name, "error_message": ", ".join(unknown)},
            )
        values = {
            k: v
            for k, v in data.items()
            if k in known and v is not None and not _is_unresolved(v)
        }
        return cls(name=name, **values)

    @classmethod
    def from_env(cls, prefix: str, name: str | None = None) -> "ProviderSettings":
        """
        Read <PREFIX>_CLIENT_ID, _CLIENT_SECRET, _REDIRECT_URI, _ENVIRONMENT and _API_KEY.

        Args:
            prefix: Variable prefix, e.g. "HUBSPOT"
            name: Provider name, defaults to the lowercased prefix
        """
        prefix = prefix.upper().rstrip("_")
        return cls(
            name=name or prefix.lower(),
            client_id=os.getenv(f"{prefix}_CLIENT_ID", ""),
            client_secret=os.getenv(f"{prefix}_CLIENT_SECRET", ""),
            redirect_uri=os.getenv(f"{prefix}_REDIRECT_URI", ""),
            environment=os.getenv(f"{prefix}_ENVIRONMENT") or Environment.PRODUCTION.value,
            api_key=os.getenv(f"{prefix}_API_KEY"),
        )

    @property
    def has_oauth_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def oauth_config(self) -> OAuthConfig | None:
        """OAuthConfig for token refresh, or None when only an API key is configured."""
        if not self.has_oauth_credentials:
            return None
        return OAuthConfig(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            environment=self.environment,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_retry_delay,
            max_delay=self.max_retry_delay,
        )

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            timeout_seconds=self.timeout_seconds,
            retry_policy=self.retry_policy(),
            refresh_buffer_seconds=self.refresh_buffer_seconds,
            page_size=self.page_size,
        )

    def validate(self) -> None:
        """Validate numeric ranges and credential presence."""
        if self.timeout_seconds <= 0:
            raise ValueError(f"{self.name}: timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.max_retries < 0:
            raise ValueError(f"{self.name}: max_retries must be >= 0, got {self.max_retries}")
        if self.initial_retry_delay < 0 or self.max_retry_delay < self.initial_retry_delay:
            raise ValueError(
                f"{self.name}: retry delays must satisfy 0 <= initial_retry_delay <= max_retry_delay"
            )
        if self.page_size is not None and self.page_size <= 0:
            raise ValueError(f"{self.name}: page_size must be > 0, got {self.page_size}")
        if bool(self.client_id) != bool(self.client_secret):
            raise ValueError(f"{self.name}: client_id and client_secret must be set together")


@dataclass
class IntegrationsConfig:
    """All configured providers."""

    providers: dict[str, ProviderSettings] = field(default_factory=dict)

    def get_provider(self, name: str) -> ProviderSettings:
        """
        Settings for a provider.

        Raises:
            KeyError: If the provider is not configured
        """
        try:
            return self.providers[name.lower()]
        except KeyError:
            raise KeyError(
                f"Provider '{name}' is not configured (known: {sorted(self.providers)})"
            ) from None

    def validate(self) -> None:
        for settings in self.providers.values():
            settings.validate()


def load_config(
    config_path: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> IntegrationsConfig:
    """Load provider configuration from a YAML file.

    A missing default file yields an empty configuration; a missing
    explicit path raises FileNotFoundError.
    """
    explicit = config_path is not None
    path = Path(config_path) if explicit else DEFAULT_CONFIG_FILE

    load_dotenv(path.parent / ".env")
    load_dotenv()

    if explicit and not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info(f"Loading integrations configuration from {path}")
    data = _expand_env_vars(load_yaml(path))
    if overrides:
        data = _deep_merge(data, overrides)

    defaults = data.get("defaults") or {}
    providers_section = data.get("providers") or {}
    if not isinstance(providers_section, dict):
        raise ValueError("Invalid config file: 'providers:' must be a mapping")

    providers = {}
    for name, section in providers_section.items():
        merged = _deep_merge(defaults, section or {})
        providers[name.lower()] = ProviderSettings.from_dict(name.lower(), merged)

    config = IntegrationsConfig(providers=providers)
    config.validate()
    logger.debug(f"Configuration loaded for providers: {sorted(providers)}")
    return config


__all__ = [
    "ProviderSettings",
    "IntegrationsConfig",
    "ClientSettings",
    "load_config",
    "load_yaml",
    "DEFAULT_CONFIG_FILE",
]
