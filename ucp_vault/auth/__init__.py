"""Auth-method handlers and provider export.

Each method in :data:`AUTH_METHODS` knows how to move its payload's
secrets between inline configuration and the secure store.
"""

from ucp_vault.auth.api_key import ApiKeyAuthMethod
from ucp_vault.auth.base import AuthMethodHandler
from ucp_vault.auth.oauth2 import OAuth2AuthMethod
from ucp_vault.auth.registry import (
    AUTH_METHODS,
    AuthMethodDefinition,
    get_auth_method,
    get_auth_method_definition,
)
from ucp_vault.auth.transfer import export_provider, export_providers

__all__ = [
    "AUTH_METHODS",
    "ApiKeyAuthMethod",
    "AuthMethodDefinition",
    "AuthMethodHandler",
    "OAuth2AuthMethod",
    "export_provider",
    "export_providers",
    "get_auth_method",
    "get_auth_method_definition",
]
