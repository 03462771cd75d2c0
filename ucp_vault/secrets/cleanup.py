"""Garbage collection of unreferenced secrets.

A sweep deletes every owned storage key whose reference no longer appears
in any configuration scope.  Scopes are inspected *unmerged*: a folder
may still hold a live reference that the merged view hides.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set

from ucp_vault.config.store import ConfigStore
from ucp_vault.constants import ENDPOINTS_KEY

from .refs import (
    build_ref_from_uuid,
    classify_storage_key,
    extract_uuid_from_storage_key,
    is_secret_ref,
)
from .store import SecretStore
from .walk import collect_matching

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Outcome of one sweep."""

    scanned: int = 0
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"scanned={self.scanned} deleted={len(self.deleted)} failed={len(self.failed)}"


def collect_used_secret_refs(config_store: ConfigStore) -> Set[str]:
    """Union of references found in every scope's raw ``endpoints`` value."""
    refs: Set[str] = set()

    inspection = config_store.inspect(ENDPOINTS_KEY)
    for value in inspection.values():
        collect_matching(value, is_secret_ref, refs)

    for folder in config_store.folders:
        folder_inspection = config_store.inspect(ENDPOINTS_KEY, folder=folder)
        collect_matching(folder_inspection.workspace_folder_value, is_secret_ref, refs)

    return refs


def _is_orphaned(key: str, used_refs: Set[str]) -> bool:
    if classify_storage_key(key) is None:
        logger.debug("Unrecognized owned key '%s'", key)
        return True

    uuid_str = extract_uuid_from_storage_key(key)
    if not uuid_str:
        logger.debug("Corrupt storage key '%s'", key)
        return True

    ref = build_ref_from_uuid(uuid_str)
    if not is_secret_ref(ref):
        logger.debug("Storage key '%s' does not map to a valid reference", key)
        return True

    return ref not in used_refs


async def cleanup_unused_secrets(
    secret_store: SecretStore,
    config_store: ConfigStore,
) -> CleanupResult:
    """Delete every owned secret that no configuration scope references.

    Deletions run concurrently.  A failed deletion is logged and reported
    in :attr:`CleanupResult.failed`; it never aborts the sweep, and the
    key stays eligible for the next one.
    """
    all_keys = await secret_store.get_all_keys()
    result = CleanupResult(scanned=len(all_keys))
    if not all_keys:
        return result

    used_refs = collect_used_secret_refs(config_store)
    to_delete = [key for key in all_keys if _is_orphaned(key, used_refs)]
    if not to_delete:
        logger.debug("Secret cleanup: nothing to delete (%d key(s) in use).", len(all_keys))
        return result

    outcomes = await asyncio.gather(
        *(secret_store.delete_by_key(key) for key in to_delete),
        return_exceptions=True,
    )
    for key, outcome in zip(to_delete, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("Failed to delete unused secret '%s': %s", key, outcome)
            result.failed[key] = str(outcome)
        else:
            result.deleted.append(key)

    logger.info("Secret cleanup finished: %s", result.summary())
    return result
