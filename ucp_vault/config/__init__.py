"""Scoped configuration for UCP Vault."""

from ucp_vault.config.ops import stable_dumps
from ucp_vault.config.schema import (
    NO_AUTH_METHOD,
    ApiKeyAuthConfig,
    AuthConfig,
    NoAuthConfig,
    OAuth2AuthCodeConfig,
    OAuth2AuthConfig,
    OAuth2ClientCredentialsConfig,
    OAuth2DeviceCodeConfig,
    OAuth2TokenData,
    ProviderConfig,
)
from ucp_vault.config.store import ConfigInspection, ConfigScope, ConfigStore
from ucp_vault.config.watcher import ConfigWatcher

__all__ = [
    "NO_AUTH_METHOD",
    "ApiKeyAuthConfig",
    "AuthConfig",
    "ConfigInspection",
    "ConfigScope",
    "ConfigStore",
    "ConfigWatcher",
    "NoAuthConfig",
    "OAuth2AuthCodeConfig",
    "OAuth2AuthConfig",
    "OAuth2ClientCredentialsConfig",
    "OAuth2DeviceCodeConfig",
    "OAuth2TokenData",
    "ProviderConfig",
    "stable_dumps",
]
