"""Reference-based secret management.

Configuration holds ``$UCPSECRET:<uuid>$`` references; the values live in
a secure-storage backend behind :class:`SecretStore`.
"""

from ucp_vault.secrets.backends import (
    FileBackend,
    KeyringBackend,
    MemoryBackend,
    SecretBackend,
    create_backend,
)
from ucp_vault.secrets.cleanup import CleanupResult, cleanup_unused_secrets
from ucp_vault.secrets.migration import (
    delete_api_key_secret_if_unused,
    migrate_api_key_storage,
    migrate_api_key_to_auth,
)
from ucp_vault.secrets.refs import (
    SECRET_KEY_PREFIXES,
    SECRET_REF_PREFIX,
    SECRET_REF_SUFFIX,
    SECRET_STORAGE_PREFIX,
    SecretKind,
    build_api_key_storage_key,
    build_oauth2_client_secret_storage_key,
    build_oauth2_token_storage_key,
    build_ref_from_uuid,
    build_storage_key,
    create_secret_ref,
    extract_uuid_from_ref,
    extract_uuid_from_storage_key,
    is_secret_ref,
)
from ucp_vault.secrets.store import ApiKeyStatusKind, ApiKeyStorageStatus, SecretStore

__all__ = [
    "SECRET_KEY_PREFIXES",
    "SECRET_REF_PREFIX",
    "SECRET_REF_SUFFIX",
    "SECRET_STORAGE_PREFIX",
    "ApiKeyStatusKind",
    "ApiKeyStorageStatus",
    "CleanupResult",
    "FileBackend",
    "KeyringBackend",
    "MemoryBackend",
    "SecretBackend",
    "SecretKind",
    "SecretStore",
    "build_api_key_storage_key",
    "build_oauth2_client_secret_storage_key",
    "build_oauth2_token_storage_key",
    "build_ref_from_uuid",
    "build_storage_key",
    "cleanup_unused_secrets",
    "create_backend",
    "create_secret_ref",
    "delete_api_key_secret_if_unused",
    "extract_uuid_from_ref",
    "extract_uuid_from_storage_key",
    "is_secret_ref",
    "migrate_api_key_storage",
    "migrate_api_key_to_auth",
]
