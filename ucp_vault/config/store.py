"""Scoped configuration store.

Configuration is layered the way editor settings are: a built-in default,
a global (user) file, an optional workspace file, and one file per
workspace folder.  Each scope file is a YAML mapping such as::

    storeApiKeyInSettings: false
    endpoints:
      - name: openai
        type: openai-chat-completion
        baseUrl: https://api.openai.com/v1
        auth:
          method: api-key
          apiKey: $UCPSECRET:3f2b8c1e-7d4a-4c55-9a0e-1b2c3d4e5f60$

Reads resolve the most specific scope that defines a key.  Writes go to
the most specific scope that already defines ``endpoints`` (global when
none does), mirroring how the value was originally configured.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from ucp_vault.config.schema import ProviderConfig
from ucp_vault.constants import ENDPOINTS_KEY, STORE_API_KEY_IN_SETTINGS_KEY, VERBOSE_KEY
from ucp_vault.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    ENDPOINTS_KEY: [],
    STORE_API_KEY_IN_SETTINGS_KEY: False,
    VERBOSE_KEY: False,
}


class ConfigScope(str, Enum):
    DEFAULT = "default"
    GLOBAL = "global"
    WORKSPACE = "workspace"
    WORKSPACE_FOLDER = "workspace-folder"


@dataclass(frozen=True)
class ConfigInspection:
    """Unmerged value of one key at every scope (``None`` = not defined)."""

    key: str
    default_value: Any = None
    global_value: Any = None
    workspace_value: Any = None
    workspace_folder_value: Any = None

    def values(self) -> List[Any]:
        return [
            self.default_value,
            self.global_value,
            self.workspace_value,
            self.workspace_folder_value,
        ]


def _read_scope_file(path: Optional[str]) -> Dict[str, Any]:
    """Read one scope file; a missing file is an empty scope."""
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except Exception as exc:
        raise ConfigurationError(f"Error reading configuration file: {path}\n  {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top-level content of {path} must be a YAML mapping (dictionary)."
        )
    return data


def _write_scope_file(path: str, data: Dict[str, Any]) -> None:
    dir_name = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(dir_name, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_name, prefix=".config_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _validate_endpoint(index: int, raw: Any) -> Optional[ProviderConfig]:
    if not isinstance(raw, dict):
        logger.warning("Skipping endpoint #%d: not a mapping.", index)
        return None
    try:
        return ProviderConfig.model_validate(raw)
    except ValidationError as exc:
        logger.warning(
            "Skipping endpoint #%d (%s): %d validation error(s).",
            index,
            raw.get("name", "<unnamed>"),
            exc.error_count(),
        )
        return None


class ConfigStore:
    """Layered YAML configuration with raw and typed endpoint views.

    Parameters
    ----------
    global_path:
        User-level configuration file.
    workspace_path:
        Optional workspace-level file.
    folder_paths:
        Mapping of workspace folder name → folder-level configuration file.
    active_folder:
        Folder whose scope participates in merged reads and may receive
        writes.  ``None`` means no folder scope is active.
    """

    def __init__(
        self,
        global_path: str,
        workspace_path: Optional[str] = None,
        folder_paths: Optional[Dict[str, str]] = None,
        active_folder: Optional[str] = None,
    ) -> None:
        self._global_path = global_path
        self._workspace_path = workspace_path
        self._folder_paths: Dict[str, str] = dict(folder_paths or {})
        if active_folder is not None and active_folder not in self._folder_paths:
            raise ConfigurationError(f"Unknown workspace folder: {active_folder!r}")
        self._active_folder = active_folder

    # ── Scope access ─────────────────────────────────────────────────

    @property
    def folders(self) -> List[str]:
        return list(self._folder_paths)

    @property
    def paths(self) -> List[str]:
        """Every scope file this store reads, in ascending specificity."""
        paths = [self._global_path]
        if self._workspace_path:
            paths.append(self._workspace_path)
        paths.extend(self._folder_paths.values())
        return paths

    def _scope_path(self, scope: ConfigScope, folder: Optional[str] = None) -> Optional[str]:
        if scope is ConfigScope.GLOBAL:
            return self._global_path
        if scope is ConfigScope.WORKSPACE:
            return self._workspace_path
        if scope is ConfigScope.WORKSPACE_FOLDER:
            name = folder if folder is not None else self._active_folder
            return self._folder_paths.get(name) if name is not None else None
        return None

    def inspect(self, key: str, folder: Optional[str] = None) -> ConfigInspection:
        """Return the unmerged value of *key* at every scope.

        The folder scope is *folder* when given, else the active folder.
        """
        if folder is not None and folder not in self._folder_paths:
            raise ConfigurationError(f"Unknown workspace folder: {folder!r}")
        return ConfigInspection(
            key=key,
            default_value=DEFAULTS.get(key),
            global_value=_read_scope_file(self._global_path).get(key),
            workspace_value=_read_scope_file(self._workspace_path).get(key),
            workspace_folder_value=_read_scope_file(
                self._scope_path(ConfigScope.WORKSPACE_FOLDER, folder)
            ).get(key),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Return the most specific defined value of *key*."""
        inspection = self.inspect(key)
        for value in (
            inspection.workspace_folder_value,
            inspection.workspace_value,
            inspection.global_value,
            inspection.default_value,
        ):
            if value is not None:
                return value
        return default

    def _endpoints_target(self) -> ConfigScope:
        inspection = self.inspect(ENDPOINTS_KEY)
        if inspection.workspace_folder_value is not None:
            return ConfigScope.WORKSPACE_FOLDER
        if inspection.workspace_value is not None:
            return ConfigScope.WORKSPACE
        return ConfigScope.GLOBAL

    async def update(self, key: str, value: Any, scope: ConfigScope) -> None:
        """Write *key* into the file backing *scope* (read-modify-write)."""
        path = self._scope_path(scope)
        if path is None:
            raise ConfigurationError(f"No configuration file for scope '{scope.value}'.")

        def _apply() -> None:
            data = _read_scope_file(path)
            data[key] = value
            _write_scope_file(path, data)

        await asyncio.to_thread(_apply)
        logger.debug("Updated '%s' in %s scope (%s)", key, scope.value, path)

    # ── Settings ─────────────────────────────────────────────────────

    @property
    def store_api_key_in_settings(self) -> bool:
        """Whether secrets stay inline in configuration instead of the secure store."""
        raw = self.get(STORE_API_KEY_IN_SETTINGS_KEY, False)
        return raw if isinstance(raw, bool) else False

    @property
    def verbose(self) -> bool:
        raw = self.get(VERBOSE_KEY, False)
        return raw if isinstance(raw, bool) else False

    # ── Endpoints ────────────────────────────────────────────────────

    @property
    def raw_endpoints(self) -> List[Any]:
        """Unvalidated ``endpoints`` value (used by legacy migrations)."""
        raw = self.get(ENDPOINTS_KEY, [])
        return list(raw) if isinstance(raw, list) else []

    @property
    def endpoint_entries(self) -> List[Tuple[Any, Optional[ProviderConfig]]]:
        """Every raw entry paired with its validated model (``None`` if invalid)."""
        entries: List[Tuple[Any, Optional[ProviderConfig]]] = []
        for index, raw in enumerate(self.raw_endpoints):
            entries.append((raw, _validate_endpoint(index, raw)))
        return entries

    @property
    def endpoints(self) -> List[ProviderConfig]:
        """Validated providers; malformed entries are skipped."""
        return [provider for _, provider in self.endpoint_entries if provider is not None]

    async def set_raw_endpoints(self, endpoints: Sequence[Any]) -> None:
        await self.update(ENDPOINTS_KEY, list(endpoints), self._endpoints_target())

    async def set_endpoints(self, endpoints: Sequence[ProviderConfig]) -> None:
        """Replace the whole list.  Entries that failed validation are not kept."""
        await self.set_raw_endpoints([p.to_wire() for p in endpoints])
