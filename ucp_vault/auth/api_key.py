"""API key auth method."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ucp_vault.config.schema import ApiKeyAuthConfig
from ucp_vault.errors import MissingSecretError
from ucp_vault.secrets.refs import create_secret_ref, is_secret_ref
from ucp_vault.secrets.store import ApiKeyStatusKind

from .base import AuthMethodHandler

if TYPE_CHECKING:
    from ucp_vault.secrets.store import SecretStore

logger = logging.getLogger(__name__)


class ApiKeyAuthMethod(AuthMethodHandler[ApiKeyAuthConfig]):
    method = "api-key"

    async def normalize_on_import(
        self,
        auth: ApiKeyAuthConfig,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
        existing: Optional[ApiKeyAuthConfig] = None,
    ) -> ApiKeyAuthConfig:
        status = await secret_store.get_api_key_status(auth.api_key)

        if status.kind is ApiKeyStatusKind.UNSET:
            return auth.model_copy(update={"api_key": None})

        if store_secrets_in_settings:
            if status.kind is ApiKeyStatusKind.MISSING_SECRET:
                # Nothing to inline; keep the dangling reference for re-entry.
                return auth.model_copy(update={"api_key": status.ref})
            return auth.model_copy(update={"api_key": status.api_key})

        if status.kind is ApiKeyStatusKind.PLAIN:
            existing_ref = (
                existing.api_key
                if existing is not None and is_secret_ref(existing.api_key)
                else None
            )
            ref = existing_ref or create_secret_ref()
            await secret_store.set_api_key(ref, status.api_key or "")
            logger.debug("Moved inline API key into secure storage (%s)", ref)
            return auth.model_copy(update={"api_key": ref})

        return auth.model_copy(update={"api_key": status.ref})

    async def resolve_for_export(
        self, auth: ApiKeyAuthConfig, secret_store: "SecretStore"
    ) -> ApiKeyAuthConfig:
        status = await secret_store.get_api_key_status(auth.api_key)
        if status.kind is ApiKeyStatusKind.MISSING_SECRET:
            raise MissingSecretError("Missing API key secret")
        return auth.model_copy(update={"api_key": status.api_key})

    def redact_for_export(self, auth: ApiKeyAuthConfig) -> ApiKeyAuthConfig:
        return auth.model_copy(update={"api_key": None})

    async def prepare_for_duplicate(
        self,
        auth: ApiKeyAuthConfig,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
    ) -> ApiKeyAuthConfig:
        status = await secret_store.get_api_key_status(auth.api_key)
        if status.kind in (ApiKeyStatusKind.UNSET, ApiKeyStatusKind.MISSING_SECRET):
            raise MissingSecretError("Missing API key secret")

        if store_secrets_in_settings:
            return auth.model_copy(update={"api_key": status.api_key})

        ref = create_secret_ref()
        await secret_store.set_api_key(ref, status.api_key or "")
        return auth.model_copy(update={"api_key": ref})
