"""OAuth 2.0 auth method.

Two fields of an ``oauth2`` payload may hold secrets:

* ``token``: the serialized :class:`OAuth2TokenData` (or a reference)
* ``oauth.clientSecret``: for ``authorization_code`` and
  ``client_credentials`` grants (or a reference)
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional, Union

from ucp_vault.config.schema import (
    OAuth2AuthCodeConfig,
    OAuth2AuthConfig,
    OAuth2ClientCredentialsConfig,
    OAuth2DeviceCodeConfig,
)
from ucp_vault.errors import MissingSecretError
from ucp_vault.secrets.refs import create_secret_ref, is_secret_ref
from ucp_vault.secrets.store import parse_token_data

from .base import AuthMethodHandler

if TYPE_CHECKING:
    from ucp_vault.secrets.store import SecretStore

logger = logging.getLogger(__name__)

_OAuth2Config = Union[OAuth2AuthCodeConfig, OAuth2ClientCredentialsConfig, OAuth2DeviceCodeConfig]
_SECRET_GRANTS = (OAuth2AuthCodeConfig, OAuth2ClientCredentialsConfig)


def _strip(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


class OAuth2AuthMethod(AuthMethodHandler[OAuth2AuthConfig]):
    method = "oauth2"

    # ── Normalization ────────────────────────────────────────────────

    async def _normalize_token(
        self,
        auth: OAuth2AuthConfig,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
        existing: Optional[OAuth2AuthConfig],
    ) -> Optional[str]:
        raw = _strip(auth.token)
        if not raw:
            return None

        if store_secrets_in_settings:
            if not is_secret_ref(raw):
                return raw
            stored = await secret_store.get_oauth2_token(raw)
            return json.dumps(stored.to_wire()) if stored is not None else raw

        if is_secret_ref(raw):
            return raw

        token_data = parse_token_data(raw)
        if token_data is None:
            logger.warning("Dropping unparseable inline OAuth2 token")
            return None

        existing_token = existing.token if existing is not None else None
        ref = existing_token if is_secret_ref(existing_token) else create_secret_ref()
        await secret_store.set_oauth2_token(ref, token_data)
        return ref

    async def _normalize_client_secret(
        self,
        oauth: _OAuth2Config,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
        existing: Optional[OAuth2AuthConfig],
    ) -> _OAuth2Config:
        if not isinstance(oauth, _SECRET_GRANTS):
            return oauth

        raw = _strip(oauth.client_secret)
        if not raw:
            if isinstance(oauth, OAuth2AuthCodeConfig):
                return oauth.model_copy(update={"client_secret": None})
            return oauth

        if store_secrets_in_settings:
            if not is_secret_ref(raw):
                return oauth
            stored = await secret_store.get_oauth2_client_secret(raw)
            return oauth.model_copy(update={"client_secret": stored}) if stored else oauth

        if is_secret_ref(raw):
            return oauth

        existing_oauth = existing.oauth if existing is not None else None
        existing_ref = None
        if (
            existing_oauth is not None
            and existing_oauth.grant_type == oauth.grant_type
            and is_secret_ref(getattr(existing_oauth, "client_secret", None))
        ):
            existing_ref = existing_oauth.client_secret  # type: ignore[union-attr]

        ref = existing_ref or create_secret_ref()
        await secret_store.set_oauth2_client_secret(ref, raw)
        return oauth.model_copy(update={"client_secret": ref})

    async def normalize_on_import(
        self,
        auth: OAuth2AuthConfig,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
        existing: Optional[OAuth2AuthConfig] = None,
    ) -> OAuth2AuthConfig:
        token = await self._normalize_token(
            auth, secret_store, store_secrets_in_settings, existing
        )
        oauth = await self._normalize_client_secret(
            auth.oauth, secret_store, store_secrets_in_settings, existing
        )
        return auth.model_copy(update={"token": token, "oauth": oauth})

    # ── Export / duplicate ───────────────────────────────────────────

    async def resolve_for_export(
        self, auth: OAuth2AuthConfig, secret_store: "SecretStore"
    ) -> OAuth2AuthConfig:
        token = _strip(auth.token) or None
        if token is not None and is_secret_ref(token):
            stored = await secret_store.get_oauth2_token(token)
            if stored is None:
                raise MissingSecretError("Missing OAuth2 token")
            token = json.dumps(stored.to_wire())

        oauth = auth.oauth
        if isinstance(oauth, _SECRET_GRANTS):
            raw = _strip(oauth.client_secret)
            if not raw and isinstance(oauth, OAuth2ClientCredentialsConfig):
                raise MissingSecretError("Missing OAuth2 client secret")
            if raw and is_secret_ref(raw):
                stored_secret = await secret_store.get_oauth2_client_secret(raw)
                if not stored_secret:
                    raise MissingSecretError("Missing OAuth2 client secret")
                oauth = oauth.model_copy(update={"client_secret": stored_secret})

        return auth.model_copy(update={"token": token, "oauth": oauth})

    def redact_for_export(self, auth: OAuth2AuthConfig) -> OAuth2AuthConfig:
        oauth = auth.oauth
        if isinstance(oauth, OAuth2AuthCodeConfig):
            oauth = oauth.model_copy(update={"client_secret": None})
        elif isinstance(oauth, OAuth2ClientCredentialsConfig):
            oauth = oauth.model_copy(update={"client_secret": ""})
        return auth.model_copy(update={"token": None, "oauth": oauth})

    async def prepare_for_duplicate(
        self,
        auth: OAuth2AuthConfig,
        *,
        secret_store: "SecretStore",
        store_secrets_in_settings: bool,
    ) -> OAuth2AuthConfig:
        cleared = auth.model_copy(update={"token": None})
        if not store_secrets_in_settings:
            return cleared
        return await self.normalize_on_import(
            cleared,
            secret_store=secret_store,
            store_secrets_in_settings=True,
        )
