"""Secure-storage backends, the key/value primitive under :class:`SecretStore`.

Backends implement a small async interface::

    class SecretBackend:
        async def get(self, key: str) -> Optional[str]: ...
        async def store(self, key: str, value: str) -> None: ...
        async def delete(self, key: str) -> None: ...
        async def keys(self) -> List[str]: ...

``keys()`` returns every key in the underlying namespace, including keys
written by other applications; filtering to owned keys is the facade's job.

Built-in backends:

* ``MemoryBackend``: process-local dict (tests, ephemeral sessions)
* ``FileBackend``: Fernet-encrypted JSON file
* ``KeyringBackend``: OS keyring (via ``keyring`` package)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ucp_vault.constants import DEFAULT_SECRETS_FILE, KEYRING_SERVICE_NAME, SECRET_KEY_ENV
from ucp_vault.errors import SecretBackendError

logger = logging.getLogger(__name__)


class SecretBackend(ABC):
    """Abstract base class for secure key/value storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    async def store(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*.  Deleting an absent key is not an error."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """Return every key currently stored."""


# ── In-memory backend ───────────────────────────────────────────────────


class MemoryBackend(SecretBackend):
    """Keeps secrets in a plain dict for the lifetime of the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def store(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._data)


# ── Fernet-encrypted file backend ───────────────────────────────────────


class FileBackend(SecretBackend):
    """Stores secrets in a Fernet-encrypted JSON file.

    The master key is read from the ``UCP_VAULT_SECRET_KEY`` environment
    variable unless passed explicitly.

    Parameters
    ----------
    path:
        Path to the encrypted secrets file.
    key:
        Optional Fernet key; overrides the environment variable.
    """

    def __init__(self, path: str = DEFAULT_SECRETS_FILE, key: Optional[str] = None) -> None:
        self._path = path
        self._key = key
        self._fernet: Optional[object] = None  # lazy
        # Guards load-modify-save; concurrent to_thread workers share one file.
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def _ensure_fernet(self) -> object:
        if self._fernet is not None:
            return self._fernet

        from cryptography.fernet import Fernet

        key = self._key or os.environ.get(SECRET_KEY_ENV)
        if not key:
            raise SecretBackendError(
                f"{SECRET_KEY_ENV} environment variable must be set for encrypted secret storage."
            )

        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        return self._fernet

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self._path):
            return {}
        fernet = self._ensure_fernet()
        try:
            with open(self._path, "rb") as f:
                encrypted = f.read()
            decrypted = fernet.decrypt(encrypted)  # type: ignore[attr-defined]
            return json.loads(decrypted)
        except Exception as exc:
            raise SecretBackendError(
                f"Failed to load/decrypt secrets file {self._path}: {exc}. "
                f"Check that {SECRET_KEY_ENV} is correct and the file is not corrupted."
            ) from exc

    def _save(self, data: Dict[str, str]) -> None:
        fernet = self._ensure_fernet()
        plaintext = json.dumps(data).encode()
        encrypted = fernet.encrypt(plaintext)  # type: ignore[attr-defined]

        dir_name = os.path.dirname(os.path.abspath(self._path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, prefix=".secrets_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(encrypted)
            os.replace(tmp_path, self._path)
            os.chmod(self._path, 0o600)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _store_sync(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def _delete_sync(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def store(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._store_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def keys(self) -> List[str]:
        data = await asyncio.to_thread(self._load)
        return list(data)


# ── OS keyring backend ──────────────────────────────────────────────────


class KeyringBackend(SecretBackend):
    """Uses the OS keyring (macOS Keychain, GNOME Keyring, etc.).

    The keyring API cannot enumerate entries, so the set of stored keys is
    tracked in a separate index entry.
    """

    _INDEX_KEY = "__ucp_vault_key_index__"

    def __init__(self, service_name: str = KEYRING_SERVICE_NAME) -> None:
        self._service = service_name
        self._keyring: Optional[object] = None
        # Guards the key index read-modify-write.
        self._lock = threading.Lock()

    def _ensure_keyring(self) -> object:
        if self._keyring is None:
            import keyring

            self._keyring = keyring
        return self._keyring

    def _read_index(self) -> List[str]:
        kr = self._ensure_keyring()
        raw = kr.get_password(self._service, self._INDEX_KEY)  # type: ignore[attr-defined]
        if raw:
            try:
                return list(json.loads(raw))
            except (json.JSONDecodeError, TypeError):
                logger.warning("Keyring key index is corrupt; treating it as empty.")
        return []

    def _write_index(self, names: List[str]) -> None:
        kr = self._ensure_keyring()
        kr.set_password(self._service, self._INDEX_KEY, json.dumps(sorted(names)))  # type: ignore[attr-defined]

    def _get_sync(self, key: str) -> Optional[str]:
        kr = self._ensure_keyring()
        return kr.get_password(self._service, key)  # type: ignore[attr-defined]

    def _store_sync(self, key: str, value: str) -> None:
        kr = self._ensure_keyring()
        with self._lock:
            kr.set_password(self._service, key, value)  # type: ignore[attr-defined]
            names = set(self._read_index())
            if key not in names:
                names.add(key)
                self._write_index(list(names))

    def _delete_sync(self, key: str) -> None:
        from keyring.errors import PasswordDeleteError

        kr = self._ensure_keyring()
        with self._lock:
            try:
                kr.delete_password(self._service, key)  # type: ignore[attr-defined]
            except PasswordDeleteError:
                logger.debug("Keyring entry '%s' was already absent.", key)
            names = set(self._read_index())
            if key in names:
                names.discard(key)
                self._write_index(list(names))

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key)

    async def store(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._store_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._read_index)


def create_backend(backend_type: str = "memory", **kwargs: str) -> SecretBackend:
    """Factory for secure-storage backends."""
    if backend_type == "memory":
        return MemoryBackend()
    if backend_type == "file":
        return FileBackend(
            path=kwargs.get("path", DEFAULT_SECRETS_FILE),
            key=kwargs.get("key"),
        )
    if backend_type == "keyring":
        return KeyringBackend(service_name=kwargs.get("service_name", KEYRING_SERVICE_NAME))
    raise SecretBackendError(f"Unknown secret backend type: {backend_type!r}")
