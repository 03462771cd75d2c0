"""Auth-method handler interface.

Each supported ``auth.method`` has one handler that knows where that
method's payload keeps secrets and how to move them between inline
configuration and the secure store.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Generic, Optional, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from ucp_vault.secrets.store import SecretStore

AuthT = TypeVar("AuthT", bound=BaseModel)


class AuthMethodHandler(abc.ABC, Generic[AuthT]):
    """Secret-handling strategy for one auth method."""

    method: str = ""

    @abc.abstractmethod
    async def normalize_on_import(
        self,
        auth: AuthT,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
        existing: Optional[AuthT] = None,
    ) -> AuthT:
        """Rewrite *auth* to the requested storage mode.

        With *store_secrets_in_settings* the payload carries resolved
        values inline; otherwise plain values are moved into the secure
        store and replaced by references.  References already present in
        *existing* are reused rather than re-issued.  Idempotent.
        """

    @abc.abstractmethod
    async def resolve_for_export(self, auth: AuthT, secret_store: "SecretStore") -> AuthT:
        """Return *auth* with every reference replaced by its value.

        Raises :class:`~ucp_vault.errors.MissingSecretError` for dangling
        references.
        """

    @abc.abstractmethod
    def redact_for_export(self, auth: AuthT) -> AuthT:
        """Return *auth* with every secret-bearing field removed."""

    @abc.abstractmethod
    async def prepare_for_duplicate(
        self,
        auth: AuthT,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
    ) -> AuthT:
        """Return the payload to use for a copy of a provider.

        Raises :class:`~ucp_vault.errors.MissingSecretError` when the
        secret to copy is not available.
        """
