"""Secret store: typed facade over a :class:`SecretBackend`.

Handles API keys, OAuth2 tokens and OAuth2 client secrets addressed by
secret references.  Read paths tolerate anything (callers routinely check
unvalidated configuration values); write paths reject malformed
references with :class:`InvalidSecretReferenceError`.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import ValidationError

from ucp_vault.config.schema import OAuth2TokenData
from ucp_vault.display.logging_config import secret_redaction_filter
from ucp_vault.errors import InvalidSecretReferenceError

from .backends import SecretBackend
from .refs import (
    SECRET_STORAGE_PREFIX,
    SecretKind,
    build_storage_key,
    classify_storage_key,
    create_secret_ref,
    extract_uuid_from_ref,
    is_secret_ref,
)

logger = logging.getLogger(__name__)


class ApiKeyStatusKind(str, Enum):
    UNSET = "unset"
    PLAIN = "plain"
    SECRET = "secret"
    MISSING_SECRET = "missing-secret"


@dataclass(frozen=True)
class ApiKeyStorageStatus:
    """Resolved state of a configured API key value.

    ``api_key`` is set for ``plain`` and ``secret``; ``ref`` is set for
    ``secret`` and ``missing-secret``.
    """

    kind: ApiKeyStatusKind
    api_key: Optional[str] = None
    ref: Optional[str] = None

    @classmethod
    def unset(cls) -> "ApiKeyStorageStatus":
        return cls(ApiKeyStatusKind.UNSET)

    @classmethod
    def plain(cls, api_key: str) -> "ApiKeyStorageStatus":
        return cls(ApiKeyStatusKind.PLAIN, api_key=api_key)

    @classmethod
    def secret(cls, ref: str, api_key: str) -> "ApiKeyStorageStatus":
        return cls(ApiKeyStatusKind.SECRET, api_key=api_key, ref=ref)

    @classmethod
    def missing_secret(cls, ref: str) -> "ApiKeyStorageStatus":
        return cls(ApiKeyStatusKind.MISSING_SECRET, ref=ref)

    def __repr__(self) -> str:
        # Never show the key itself
        shown = "<hidden>" if self.api_key is not None else None
        return f"ApiKeyStorageStatus(kind={self.kind.value!r}, ref={self.ref!r}, api_key={shown})"


def parse_token_data(raw: Optional[str]) -> Optional[OAuth2TokenData]:
    """Parse a serialized token blob; anything malformed yields ``None``."""
    if not raw:
        return None
    try:
        return OAuth2TokenData.model_validate_json(raw)
    except (ValidationError, ValueError):
        return None


class SecretStore:
    """Unified secret storage for API keys, OAuth2 tokens and client secrets.

    Parameters
    ----------
    backend:
        The secure key/value primitive.  Passed in explicitly so tests can
        substitute :class:`~ucp_vault.secrets.backends.MemoryBackend`.
    """

    def __init__(self, backend: SecretBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> SecretBackend:
        return self._backend

    # ── Reference helpers ────────────────────────────────────────────

    def create_ref(self) -> str:
        return create_secret_ref()

    def is_ref(self, value: object) -> bool:
        return is_secret_ref(value)

    def extract_uuid(self, ref: object) -> Optional[str]:
        return extract_uuid_from_ref(ref)

    # ── Generic per-kind access ──────────────────────────────────────

    def _write_key(self, kind: SecretKind, ref: object) -> str:
        key = build_storage_key(kind, ref)
        if key is None:
            raise InvalidSecretReferenceError(ref)
        return key

    async def _get(self, kind: SecretKind, ref: object) -> Optional[str]:
        key = build_storage_key(kind, ref)
        if key is None:
            return None
        return await self._backend.get(key)

    async def _set(self, kind: SecretKind, ref: object, value: str) -> None:
        key = self._write_key(kind, ref)
        await self._backend.store(key, value)
        # nosemgrep: python-logger-credential-disclosure (logs key, not value)
        logger.debug("Stored %s secret under '%s'", kind.value, key)

    async def _delete(self, kind: SecretKind, ref: object) -> None:
        key = self._write_key(kind, ref)
        await self._backend.delete(key)
        logger.debug("Deleted %s secret '%s'", kind.value, key)

    # ── API keys ─────────────────────────────────────────────────────

    async def get_api_key(self, ref: object) -> Optional[str]:
        return await self._get(SecretKind.API_KEY, ref)

    async def set_api_key(self, ref: str, api_key: str) -> None:
        await self._set(SecretKind.API_KEY, ref, api_key)

    async def delete_api_key(self, ref: str) -> None:
        await self._delete(SecretKind.API_KEY, ref)

    async def get_api_key_status(self, raw_api_key: Optional[str]) -> ApiKeyStorageStatus:
        """Resolve a configured API key value (plain text or reference).

        This is the canonical read path for any configured API key.
        """
        api_key = raw_api_key.strip() if isinstance(raw_api_key, str) else ""
        if not api_key:
            return ApiKeyStorageStatus.unset()

        if not is_secret_ref(api_key):
            return ApiKeyStorageStatus.plain(api_key)

        stored = await self.get_api_key(api_key)
        if stored:
            secret_redaction_filter.register(stored)
            return ApiKeyStorageStatus.secret(api_key, stored)

        logger.debug("API key reference %s has no stored secret", api_key)
        return ApiKeyStorageStatus.missing_secret(api_key)

    # ── OAuth2 tokens ────────────────────────────────────────────────

    async def get_oauth2_token(self, ref: object) -> Optional[OAuth2TokenData]:
        """Return the stored token, or ``None`` if absent or unreadable."""
        data = await self._get(SecretKind.OAUTH2_TOKEN, ref)
        if not data:
            return None
        token = parse_token_data(data)
        if token is None:
            logger.warning("Ignoring unreadable OAuth2 token stored for %s", ref)
            return None
        secret_redaction_filter.register(token.access_token, token.refresh_token)
        return token

    async def set_oauth2_token(self, ref: str, token: OAuth2TokenData) -> None:
        payload = json.dumps(token.to_wire())
        await self._set(SecretKind.OAUTH2_TOKEN, ref, payload)

    async def delete_oauth2_token(self, ref: str) -> None:
        await self._delete(SecretKind.OAUTH2_TOKEN, ref)

    async def has_oauth2_token(self, ref: object) -> bool:
        return await self.get_oauth2_token(ref) is not None

    @staticmethod
    def is_oauth2_token_expired(
        token: OAuth2TokenData,
        buffer_ms: int = 0,
        *,
        now_ms: Optional[int] = None,
    ) -> bool:
        """Check whether *token* is expired or within *buffer_ms* of expiring.

        A token without ``expiresAt`` never expires.
        """
        if not token.expires_at:
            return False
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms >= token.expires_at - buffer_ms

    # ── OAuth2 client secrets ────────────────────────────────────────

    async def get_oauth2_client_secret(self, ref: object) -> Optional[str]:
        secret = await self._get(SecretKind.OAUTH2_CLIENT_SECRET, ref)
        if secret:
            secret_redaction_filter.register(secret)
        return secret

    async def set_oauth2_client_secret(self, ref: str, secret: str) -> None:
        await self._set(SecretKind.OAUTH2_CLIENT_SECRET, ref, secret)

    async def delete_oauth2_client_secret(self, ref: str) -> None:
        await self._delete(SecretKind.OAUTH2_CLIENT_SECRET, ref)

    # ── Key enumeration (garbage collection) ─────────────────────────

    async def get_all_keys(self) -> List[str]:
        """Return only the storage keys owned by this package."""
        keys = await self._backend.keys()
        return [k for k in keys if k.startswith(SECRET_STORAGE_PREFIX)]

    async def delete_by_key(self, key: str) -> None:
        await self._backend.delete(key)
        logger.debug("Deleted secret by key '%s'", key)

    def is_api_key_storage_key(self, key: str) -> bool:
        return classify_storage_key(key) is SecretKind.API_KEY

    def is_oauth2_token_storage_key(self, key: str) -> bool:
        return classify_storage_key(key) is SecretKind.OAUTH2_TOKEN

    def is_oauth2_client_secret_storage_key(self, key: str) -> bool:
        return classify_storage_key(key) is SecretKind.OAUTH2_CLIENT_SECRET
