"""Provider export: resolve or redact auth payloads for sharing.

Usage::

    providers = await export_providers(
        config_store.endpoints, secret_store, include_sensitive=True
    )
    yaml.safe_dump([p.to_wire() for p in providers])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Sequence

from ucp_vault.config.schema import ProviderConfig
from ucp_vault.errors import MissingSecretError

from .registry import get_auth_method

if TYPE_CHECKING:
    from ucp_vault.secrets.store import SecretStore

logger = logging.getLogger(__name__)


async def export_provider(
    provider: ProviderConfig,
    secret_store: "SecretStore",
    *,
    include_sensitive: bool,
) -> ProviderConfig:
    """Return a copy of *provider* whose auth is resolved or redacted."""
    auth = provider.auth
    if auth is None:
        return provider.model_copy()

    handler = get_auth_method(auth.method)
    if handler is None:
        return provider.model_copy()

    if not include_sensitive:
        return provider.model_copy(update={"auth": handler.redact_for_export(auth)})

    resolved = await handler.resolve_for_export(auth, secret_store)
    return provider.model_copy(update={"auth": resolved})


async def export_providers(
    providers: Sequence[ProviderConfig],
    secret_store: "SecretStore",
    *,
    include_sensitive: bool,
) -> List[ProviderConfig]:
    """Export every provider.

    Raises :class:`MissingSecretError` listing every provider whose
    secrets could not be resolved.
    """
    exported: List[ProviderConfig] = []
    missing: List[str] = []

    for provider in providers:
        try:
            exported.append(
                await export_provider(
                    provider, secret_store, include_sensitive=include_sensitive
                )
            )
        except MissingSecretError:
            missing.append(provider.name)

    if missing:
        logger.warning("Export aborted: missing secrets for %s", ", ".join(missing))
        raise MissingSecretError(
            "Sensitive data is missing for provider(s): "
            + ", ".join(missing)
            + ". Please re-authenticate before exporting.",
            names=missing,
        )
    return exported
