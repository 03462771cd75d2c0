"""Async configuration watcher with debounce.

Watches every scope file of a :class:`~ucp_vault.config.store.ConfigStore`
and triggers a callback after a debounce period.  Uses ``asyncio``
polling (stat-based) rather than ``watchdog`` to avoid an extra
dependency.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL: float = 2.0
DEFAULT_DEBOUNCE: float = 1.0


class ConfigWatcher:
    """Poll-based async watcher over a set of configuration files.

    Parameters
    ----------
    paths:
        Files to watch.  Missing files are watched too; creating one
        counts as a change.
    on_change:
        Async callback invoked once per debounced burst of changes.
    poll_interval:
        Seconds between ``os.stat`` polls.
    debounce:
        Seconds to wait after the last detected change before invoking
        the callback.
    """

    def __init__(
        self,
        paths: Sequence[str],
        on_change: Callable[[], Awaitable[Any]],
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
    ) -> None:
        self._paths = list(paths)
        self._on_change = on_change
        self._poll_interval = poll_interval
        self._debounce = debounce

        self._task: Optional[asyncio.Task[None]] = None
        self._last_mtimes: Dict[str, float] = {}
        self._stop_event = asyncio.Event()

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Begin watching.  Safe to call multiple times."""
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        self._last_mtimes = self._snapshot()
        self._task = asyncio.create_task(self._poll_loop(), name="config-watcher")
        logger.info("Config watcher started: %d file(s)", len(self._paths))

    async def stop(self) -> None:
        """Stop watching and await task cleanup."""
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Config watcher stopped.")

    @property
    def watching(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Internal ─────────────────────────────────────────────────────

    def _snapshot(self) -> Dict[str, float]:
        mtimes: Dict[str, float] = {}
        for path in self._paths:
            try:
                mtimes[path] = os.stat(path).st_mtime
            except OSError:
                mtimes[path] = 0.0
        return mtimes

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                return

            mtimes = self._snapshot()
            if mtimes == self._last_mtimes:
                continue

            logger.debug("Config change detected, debouncing...")
            # Wait until a full debounce period passes with no further writes.
            while True:
                await asyncio.sleep(self._debounce)
                settled = self._snapshot()
                if settled == mtimes:
                    break
                mtimes = settled
            self._last_mtimes = mtimes

            try:
                logger.info("Configuration changed, running change callback...")
                await self._on_change()
            except Exception:
                logger.exception("Error in config-change callback.")
