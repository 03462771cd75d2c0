"""
UCP Vault - credential storage for provider configuration.

Keeps API keys, OAuth2 tokens and OAuth2 client secrets in a secure store
and leaves only ``$UCPSECRET:<uuid>$`` references in (possibly synced)
configuration, with migrations and garbage collection that keep the two
consistent across every configuration scope.
"""

from ucp_vault.constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
__app_name__ = APP_NAME

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "__version__",
    "__app_name__",
]
