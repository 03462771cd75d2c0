"""Migrations that move credentials into and out of the reference scheme.

* :func:`migrate_api_key_to_auth`: rewrite the legacy top-level
  ``apiKey`` field into an ``auth`` payload.
* :func:`migrate_api_key_storage`: re-normalize every provider's auth
  payload to the configured storage mode.
* :func:`delete_api_key_secret_if_unused`: drop one API key secret once
  no provider refers to it.

All of them write configuration only when something actually changed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from ucp_vault.config.ops import stable_dumps
from ucp_vault.config.schema import NO_AUTH_METHOD, ProviderConfig, get_auth_api_key
from ucp_vault.config.store import ConfigStore
from ucp_vault.display.progress import with_progress

from .refs import is_secret_ref
from .store import SecretStore

logger = logging.getLogger(__name__)

_LEGACY_API_KEY_FIELD = "apiKey"


def rewrite_legacy_api_key(item: Any) -> Any:
    """Return *item* with a legacy ``apiKey`` moved into ``auth``.

    Returns *item* itself (same object) when there is nothing to rewrite.
    """
    if not isinstance(item, dict) or _LEGACY_API_KEY_FIELD not in item:
        return item

    updated: Dict[str, Any] = dict(item)
    legacy_api_key = updated.pop(_LEGACY_API_KEY_FIELD)

    if updated.get("auth") is None:
        if isinstance(legacy_api_key, str) and legacy_api_key.strip():
            updated["auth"] = {"method": "api-key", "apiKey": legacy_api_key}

    return updated


async def migrate_api_key_to_auth(config_store: ConfigStore) -> bool:
    """Rewrite legacy ``apiKey`` fields; return ``True`` if config was written."""
    raw_endpoints = config_store.raw_endpoints
    if not raw_endpoints:
        return False

    updated = [rewrite_legacy_api_key(item) for item in raw_endpoints]
    changed = sum(1 for old, new in zip(raw_endpoints, updated) if new is not old)
    if not changed:
        return False

    await config_store.set_raw_endpoints(updated)
    logger.info("Migrated legacy apiKey field on %d endpoint(s).", changed)
    return True


async def _normalize_providers(
    config_store: ConfigStore,
    secret_store: SecretStore,
    store_api_key_in_settings: bool,
) -> bool:
    # Imported here: the auth handlers depend on this package.
    from ucp_vault.auth.registry import get_auth_method

    entries = config_store.endpoint_entries
    if not entries:
        return False

    did_change = False
    updated: List[Any] = []

    # Entries that do not validate are written back untouched.
    for raw, provider in entries:
        auth = provider.auth if provider is not None else None
        if provider is not None and auth is not None and auth.method != NO_AUTH_METHOD:
            handler = get_auth_method(auth.method)
            before = stable_dumps(auth)
            normalized = await handler.normalize_on_import(  # type: ignore[union-attr]
                auth,
                secret_store=secret_store,
                store_secrets_in_settings=store_api_key_in_settings,
                existing=auth,
            )
            if stable_dumps(normalized) != before:
                did_change = True
                raw = provider.model_copy(update={"auth": normalized}).to_wire()
        updated.append(raw)

    if did_change:
        await config_store.set_raw_endpoints(updated)
        logger.info(
            "Secret storage migrated (store in settings: %s).", store_api_key_in_settings
        )
    return did_change


async def migrate_api_key_storage(
    config_store: ConfigStore,
    secret_store: SecretStore,
    *,
    store_api_key_in_settings: bool,
    show_progress: bool = False,
) -> bool:
    """Normalize every provider's auth payload to the requested storage mode.

    Returns ``True`` if the provider list was written back.  With
    *show_progress* the same work runs under a terminal spinner.
    """

    async def work() -> bool:
        return await _normalize_providers(config_store, secret_store, store_api_key_in_settings)

    if show_progress:
        return await with_progress("Migrating secret storage...", work)
    return await work()


async def delete_api_key_secret_if_unused(
    secret_store: SecretStore,
    providers: Sequence[ProviderConfig],
    api_key_ref: str,
) -> bool:
    """Delete the API key stored under *api_key_ref* unless a provider uses it.

    Returns ``True`` if the secret was deleted.
    """
    if not is_secret_ref(api_key_ref):
        return False

    for provider in providers:
        api_key = get_auth_api_key(provider.auth)
        if api_key is not None and api_key.strip() == api_key_ref:
            return False

    await secret_store.delete_api_key(api_key_ref)
    return True
