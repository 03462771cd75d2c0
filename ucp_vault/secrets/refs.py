"""Secret references and storage-key derivation.

A secret reference is the placeholder written into configuration in
place of a literal secret::

    $UCPSECRET:3f2b8c1e-7d4a-4c55-9a0e-1b2c3d4e5f60$

The secure store keeps the actual value under a key derived from the
secret kind and the reference's UUID::

    ucp:api-key:3f2b8c1e-7d4a-4c55-9a0e-1b2c3d4e5f60

Everything here is pure: no I/O, no state, no exceptions.
"""

from __future__ import annotations

import re
import uuid
from enum import Enum
from typing import Dict, Optional

SECRET_REF_PREFIX = "$UCPSECRET:"
SECRET_REF_SUFFIX = "$"

# Every key owned by this package starts with this prefix.
SECRET_STORAGE_PREFIX = "ucp:"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class SecretKind(str, Enum):
    API_KEY = "api-key"
    OAUTH2_TOKEN = "oauth2-token"
    OAUTH2_CLIENT_SECRET = "oauth2-client-secret"


SECRET_KEY_PREFIXES: Dict[SecretKind, str] = {
    kind: f"{SECRET_STORAGE_PREFIX}{kind.value}:" for kind in SecretKind
}


def create_secret_ref() -> str:
    """Return a new reference built around a random UUID4."""
    return f"{SECRET_REF_PREFIX}{uuid.uuid4()}{SECRET_REF_SUFFIX}"


def is_secret_ref(value: object) -> bool:
    """``True`` iff *value* is exactly prefix + UUID + suffix."""
    if not isinstance(value, str):
        return False
    if len(value) <= len(SECRET_REF_PREFIX) + len(SECRET_REF_SUFFIX):
        return False
    if not value.startswith(SECRET_REF_PREFIX) or not value.endswith(SECRET_REF_SUFFIX):
        return False
    inner = value[len(SECRET_REF_PREFIX) : -len(SECRET_REF_SUFFIX)]
    return _UUID_RE.match(inner) is not None


def extract_uuid_from_ref(ref: object) -> Optional[str]:
    """Return the UUID inside *ref*, or ``None`` if it is not a reference."""
    if not is_secret_ref(ref):
        return None
    return str(ref)[len(SECRET_REF_PREFIX) : -len(SECRET_REF_SUFFIX)]


def build_storage_key(kind: SecretKind, ref: object) -> Optional[str]:
    """Derive the storage key for *ref* under *kind*, or ``None``."""
    uuid_str = extract_uuid_from_ref(ref)
    if uuid_str is None:
        return None
    return f"{SECRET_KEY_PREFIXES[kind]}{uuid_str}"


def build_api_key_storage_key(ref: object) -> Optional[str]:
    return build_storage_key(SecretKind.API_KEY, ref)


def build_oauth2_token_storage_key(ref: object) -> Optional[str]:
    return build_storage_key(SecretKind.OAUTH2_TOKEN, ref)


def build_oauth2_client_secret_storage_key(ref: object) -> Optional[str]:
    return build_storage_key(SecretKind.OAUTH2_CLIENT_SECRET, ref)


def classify_storage_key(key: str) -> Optional[SecretKind]:
    """Return the kind whose prefix *key* carries, or ``None``."""
    for kind, prefix in SECRET_KEY_PREFIXES.items():
        if key.startswith(prefix):
            return kind
    return None


def extract_uuid_from_storage_key(key: str) -> Optional[str]:
    """Recover the UUID part of a storage key of any kind.

    Returns ``None`` when the key carries no kind prefix or when nothing
    follows the prefix.
    """
    kind = classify_storage_key(key)
    if kind is None:
        return None
    remainder = key[len(SECRET_KEY_PREFIXES[kind]) :]
    return remainder or None


def build_ref_from_uuid(uuid_str: str) -> str:
    """Wrap *uuid_str* in the reference prefix/suffix (no validation)."""
    return f"{SECRET_REF_PREFIX}{uuid_str}{SECRET_REF_SUFFIX}"
