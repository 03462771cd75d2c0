"""Custom exception classes for UCP Vault."""

from typing import Iterable, Optional


class VaultBaseError(Exception):
    """Base class for all custom exceptions in UCP Vault."""

    pass


class ConfigurationError(VaultBaseError):
    """Raised when a configuration scope file cannot be read or written."""

    pass


class InvalidSecretReferenceError(VaultBaseError, ValueError):
    """Raised when a write-path operation receives a malformed reference."""

    def __init__(self, ref: object):
        self.ref = ref
        super().__init__(f"Invalid secret reference: {ref!r}")


class MissingSecretError(VaultBaseError):
    """
    Raised when a reference is well-formed but nothing is stored under it
    and the caller needs the actual value (export, duplicate).
    """

    def __init__(self, message: str, names: Optional[Iterable[str]] = None):
        self.names = list(names or [])
        super().__init__(message)


class SecretBackendError(VaultBaseError):
    """Raised when a secure-storage backend cannot be used."""

    pass
