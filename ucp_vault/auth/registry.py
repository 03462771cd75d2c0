"""Registry of supported auth methods.

Dispatch is a plain dict keyed by the ``method`` tag, which is the same
closed set as the :data:`~ucp_vault.config.schema.AuthConfig` union.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ucp_vault.config.schema import NO_AUTH_METHOD

from .api_key import ApiKeyAuthMethod
from .base import AuthMethodHandler
from .oauth2 import OAuth2AuthMethod


@dataclass(frozen=True)
class AuthMethodDefinition:
    id: str
    label: str
    description: str
    handler: AuthMethodHandler


AUTH_METHODS: Dict[str, AuthMethodDefinition] = {
    "api-key": AuthMethodDefinition(
        id="api-key",
        label="API Key",
        description="Authenticate using an API key",
        handler=ApiKeyAuthMethod(),
    ),
    "oauth2": AuthMethodDefinition(
        id="oauth2",
        label="OAuth 2.0",
        description="Authenticate using OAuth 2.0",
        handler=OAuth2AuthMethod(),
    ),
}


def get_auth_method_definition(method: str) -> Optional[AuthMethodDefinition]:
    """Return the definition for *method*; ``None`` for ``"none"``.

    Raises :class:`KeyError` for a tag outside the supported set.
    """
    if method == NO_AUTH_METHOD:
        return None
    try:
        return AUTH_METHODS[method]
    except KeyError:
        raise KeyError(f"Unknown auth method: {method!r}") from None


def get_auth_method(method: str) -> Optional[AuthMethodHandler]:
    definition = get_auth_method_definition(method)
    return definition.handler if definition is not None else None
