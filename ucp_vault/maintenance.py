"""Background secret-storage maintenance.

Migrations and cleanup sweeps must never interleave with each other, so
every job goes through a :class:`MaintenanceQueue` that runs them one at
a time in submission order.  :class:`SecretMaintenance` wires the queue
to configuration changes::

    maintenance = SecretMaintenance(config_store, secret_store)
    maintenance.schedule_startup()
    watcher = ConfigWatcher(config_store.paths, maintenance.on_config_changed)
    watcher.start()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Set

from ucp_vault.config.store import ConfigStore
from ucp_vault.secrets.cleanup import CleanupResult, cleanup_unused_secrets
from ucp_vault.secrets.migration import migrate_api_key_storage, migrate_api_key_to_auth
from ucp_vault.secrets.store import SecretStore

logger = logging.getLogger(__name__)


class MaintenanceQueue:
    """Serial async job runner.

    A failing job is logged and does not prevent later jobs from running.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task[None]] = set()

    def enqueue(
        self,
        job: Callable[[], Awaitable[Any]],
        name: str = "maintenance",
    ) -> asyncio.Task[None]:
        task = asyncio.create_task(self._run(job, name), name=f"maintenance:{name}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, job: Callable[[], Awaitable[Any]], name: str) -> None:
        async with self._lock:
            try:
                await job()
            except Exception:
                logger.exception("Maintenance job '%s' failed.", name)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every job enqueued so far (and any they enqueue) is done."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


@dataclass
class MaintenanceReport:
    legacy_migrated: bool = False
    storage_migrated: bool = False
    cleanup: CleanupResult = field(default_factory=CleanupResult)


async def run_startup_maintenance(
    config_store: ConfigStore,
    secret_store: SecretStore,
) -> MaintenanceReport:
    """Legacy rewrite, storage normalization, then a cleanup sweep."""
    report = MaintenanceReport()
    report.legacy_migrated = await migrate_api_key_to_auth(config_store)
    report.storage_migrated = await migrate_api_key_storage(
        config_store,
        secret_store,
        store_api_key_in_settings=config_store.store_api_key_in_settings,
        show_progress=False,
    )
    report.cleanup = await cleanup_unused_secrets(secret_store, config_store)
    return report


class SecretMaintenance:
    """Runs maintenance jobs in response to startup and configuration changes."""

    def __init__(
        self,
        config_store: ConfigStore,
        secret_store: SecretStore,
        *,
        queue: Optional[MaintenanceQueue] = None,
        show_progress: bool = True,
    ) -> None:
        self._config_store = config_store
        self._secret_store = secret_store
        self._queue = queue or MaintenanceQueue()
        self._show_progress = show_progress
        self._store_in_settings = config_store.store_api_key_in_settings

    @property
    def queue(self) -> MaintenanceQueue:
        return self._queue

    def schedule_startup(self) -> asyncio.Task[None]:
        return self._queue.enqueue(self._startup, name="startup")

    async def _startup(self) -> None:
        report = await run_startup_maintenance(self._config_store, self._secret_store)
        self._store_in_settings = self._config_store.store_api_key_in_settings
        logger.info(
            "Startup maintenance done (legacy=%s, storage=%s, cleanup: %s).",
            report.legacy_migrated,
            report.storage_migrated,
            report.cleanup.summary(),
        )

    async def on_config_changed(self) -> None:
        """Configuration-change callback: queue a storage check and a sweep."""
        self._queue.enqueue(self._after_change, name="config-change")

    async def _after_change(self) -> None:
        store_in_settings = self._config_store.store_api_key_in_settings
        if store_in_settings != self._store_in_settings:
            logger.info(
                "storeApiKeyInSettings changed to %s; migrating secret storage.",
                store_in_settings,
            )
            await migrate_api_key_storage(
                self._config_store,
                self._secret_store,
                store_api_key_in_settings=store_in_settings,
                show_progress=self._show_progress,
            )
            self._store_in_settings = store_in_settings
        await cleanup_unused_secrets(self._secret_store, self._config_store)
