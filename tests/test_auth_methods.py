"""Tests for the auth-method handlers, the registry and provider export."""

from __future__ import annotations

import asyncio
import json

import pytest

from ucp_vault.auth.api_key import ApiKeyAuthMethod
from ucp_vault.auth.oauth2 import OAuth2AuthMethod
from ucp_vault.auth.registry import AUTH_METHODS, get_auth_method, get_auth_method_definition
from ucp_vault.auth.transfer import export_provider, export_providers
from ucp_vault.config.schema import (
    ApiKeyAuthConfig,
    OAuth2AuthConfig,
    OAuth2TokenData,
    ProviderConfig,
)
from ucp_vault.errors import MissingSecretError
from ucp_vault.secrets.refs import is_secret_ref

REF = "$UCPSECRET:3f2b8c1e-7d4a-4c55-9a0e-1b2c3d4e5f60$"
REF2 = "$UCPSECRET:9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d$"

TOKEN_JSON = '{"accessToken": "at", "tokenType": "Bearer", "expiresAt": 123}'


def _api(api_key=None) -> ApiKeyAuthConfig:
    return ApiKeyAuthConfig(method="api-key", apiKey=api_key)


def _oauth(grant="client_credentials", token=None, client_secret="cs-plain") -> OAuth2AuthConfig:
    oauth = {"grantType": grant, "tokenUrl": "https://idp/token", "clientId": "cid"}
    if grant == "authorization_code":
        oauth["authorizationUrl"] = "https://idp/authorize"
    if grant == "device_code":
        oauth["deviceAuthorizationUrl"] = "https://idp/device"
    elif client_secret is not None:
        oauth["clientSecret"] = client_secret
    return OAuth2AuthConfig.model_validate({"method": "oauth2", "token": token, "oauth": oauth})


# ═══════════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════════


class TestRegistry:
    def test_known_methods(self):
        assert set(AUTH_METHODS) == {"api-key", "oauth2"}
        assert isinstance(get_auth_method("api-key"), ApiKeyAuthMethod)
        assert isinstance(get_auth_method("oauth2"), OAuth2AuthMethod)
        assert get_auth_method_definition("oauth2").label == "OAuth 2.0"

    def test_none_method(self):
        assert get_auth_method("none") is None

    def test_unknown_method(self):
        with pytest.raises(KeyError, match="Unknown auth method"):
            get_auth_method("kerberos")


# ═══════════════════════════════════════════════════════════════════════
# API key handler
# ═══════════════════════════════════════════════════════════════════════


class TestApiKeyNormalize:
    handler = ApiKeyAuthMethod()

    def _normalize(self, secret_store, auth, *, in_settings, existing=None):
        return asyncio.run(
            self.handler.normalize_on_import(
                auth,
                secret_store=secret_store,
                store_secrets_in_settings=in_settings,
                existing=existing,
            )
        )

    def test_unset(self, secret_store):
        out = self._normalize(secret_store, _api("  "), in_settings=False)
        assert out.api_key is None

    def test_plain_to_storage_new_ref(self, secret_store):
        out = self._normalize(secret_store, _api("sk-1"), in_settings=False)
        assert is_secret_ref(out.api_key)
        assert asyncio.run(secret_store.get_api_key(out.api_key)) == "sk-1"

    def test_plain_to_storage_reuses_existing_ref(self, secret_store):
        out = self._normalize(secret_store, _api("sk-new"), in_settings=False, existing=_api(REF))
        assert out.api_key == REF
        assert asyncio.run(secret_store.get_api_key(REF)) == "sk-new"

    def test_ref_kept_in_storage_mode(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk"))
        assert self._normalize(secret_store, _api(REF), in_settings=False).api_key == REF

    def test_missing_ref_kept_in_storage_mode(self, secret_store):
        assert self._normalize(secret_store, _api(REF), in_settings=False).api_key == REF

    def test_settings_mode_inlines_secret(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk-stored"))
        assert self._normalize(secret_store, _api(REF), in_settings=True).api_key == "sk-stored"

    def test_settings_mode_keeps_plain(self, secret_store):
        assert self._normalize(secret_store, _api(" sk "), in_settings=True).api_key == "sk"

    def test_idempotent(self, secret_store):
        once = self._normalize(secret_store, _api("sk-1"), in_settings=False)
        twice = self._normalize(secret_store, once, in_settings=False, existing=once)
        assert once == twice

    def test_extra_fields_kept(self, secret_store):
        auth = ApiKeyAuthConfig.model_validate(
            {"method": "api-key", "apiKey": "sk", "header": "X-Api-Key"}
        )
        out = self._normalize(secret_store, auth, in_settings=False)
        assert out.to_wire()["header"] == "X-Api-Key"


class TestApiKeyExportAndDuplicate:
    handler = ApiKeyAuthMethod()

    def test_resolve(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk-stored"))
        out = asyncio.run(self.handler.resolve_for_export(_api(REF), secret_store))
        assert out.api_key == "sk-stored"

    def test_resolve_missing(self, secret_store):
        with pytest.raises(MissingSecretError):
            asyncio.run(self.handler.resolve_for_export(_api(REF), secret_store))

    def test_redact(self):
        out = self.handler.redact_for_export(_api("sk"))
        assert "apiKey" not in out.to_wire()

    def test_duplicate_gets_fresh_ref(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk-stored"))
        out = asyncio.run(
            self.handler.prepare_for_duplicate(
                _api(REF), secret_store=secret_store, store_secrets_in_settings=False
            )
        )
        assert is_secret_ref(out.api_key)
        assert out.api_key != REF
        assert asyncio.run(secret_store.get_api_key(out.api_key)) == "sk-stored"

    def test_duplicate_in_settings(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk-stored"))
        out = asyncio.run(
            self.handler.prepare_for_duplicate(
                _api(REF), secret_store=secret_store, store_secrets_in_settings=True
            )
        )
        assert out.api_key == "sk-stored"

    def test_duplicate_missing(self, secret_store):
        with pytest.raises(MissingSecretError):
            asyncio.run(
                self.handler.prepare_for_duplicate(
                    _api(REF), secret_store=secret_store, store_secrets_in_settings=False
                )
            )


# ═══════════════════════════════════════════════════════════════════════
# OAuth2 handler
# ═══════════════════════════════════════════════════════════════════════


class TestOAuth2Normalize:
    handler = OAuth2AuthMethod()

    def _normalize(self, secret_store, auth, *, in_settings, existing=None):
        return asyncio.run(
            self.handler.normalize_on_import(
                auth,
                secret_store=secret_store,
                store_secrets_in_settings=in_settings,
                existing=existing,
            )
        )

    def test_moves_token_and_client_secret(self, secret_store):
        out = self._normalize(secret_store, _oauth(token=TOKEN_JSON), in_settings=False)
        assert is_secret_ref(out.token)
        assert is_secret_ref(out.oauth.client_secret)
        token = asyncio.run(secret_store.get_oauth2_token(out.token))
        assert token.access_token == "at"
        assert asyncio.run(secret_store.get_oauth2_client_secret(out.oauth.client_secret)) == (
            "cs-plain"
        )

    def test_reuses_existing_refs(self, secret_store):
        existing = _oauth(token=REF, client_secret=REF2)
        out = self._normalize(
            secret_store,
            _oauth(token=TOKEN_JSON, client_secret="cs-new"),
            in_settings=False,
            existing=existing,
        )
        assert out.token == REF
        assert out.oauth.client_secret == REF2

    def test_unparseable_token_dropped(self, secret_store):
        out = self._normalize(secret_store, _oauth(token="not json"), in_settings=False)
        assert out.token is None

    def test_settings_mode_inlines(self, secret_store):
        asyncio.run(
            secret_store.set_oauth2_token(
                REF, OAuth2TokenData(access_token="at", token_type="Bearer")
            )
        )
        asyncio.run(secret_store.set_oauth2_client_secret(REF2, "cs-stored"))
        out = self._normalize(
            secret_store, _oauth(token=REF, client_secret=REF2), in_settings=True
        )
        assert json.loads(out.token)["accessToken"] == "at"
        assert out.oauth.client_secret == "cs-stored"

    def test_device_code_has_no_client_secret(self, secret_store):
        out = self._normalize(secret_store, _oauth(grant="device_code"), in_settings=False)
        assert "clientSecret" not in out.oauth.to_wire()

    def test_blank_auth_code_secret_cleared(self, secret_store):
        out = self._normalize(
            secret_store, _oauth(grant="authorization_code", client_secret="  "), in_settings=False
        )
        assert out.oauth.client_secret is None


class TestOAuth2ExportAndDuplicate:
    handler = OAuth2AuthMethod()

    def test_redact(self):
        cc = self.handler.redact_for_export(_oauth(token=REF, client_secret=REF2))
        assert cc.token is None
        assert cc.oauth.client_secret == ""

        ac = self.handler.redact_for_export(
            _oauth(grant="authorization_code", token=REF, client_secret=REF2)
        )
        assert ac.oauth.client_secret is None

    def test_resolve(self, secret_store):
        asyncio.run(
            secret_store.set_oauth2_token(
                REF, OAuth2TokenData(access_token="at", token_type="Bearer")
            )
        )
        asyncio.run(secret_store.set_oauth2_client_secret(REF2, "cs-stored"))
        out = asyncio.run(
            self.handler.resolve_for_export(_oauth(token=REF, client_secret=REF2), secret_store)
        )
        assert json.loads(out.token)["tokenType"] == "Bearer"
        assert out.oauth.client_secret == "cs-stored"

    def test_resolve_missing_token(self, secret_store):
        with pytest.raises(MissingSecretError, match="token"):
            asyncio.run(self.handler.resolve_for_export(_oauth(token=REF), secret_store))

    def test_resolve_missing_client_secret(self, secret_store):
        with pytest.raises(MissingSecretError, match="client secret"):
            asyncio.run(
                self.handler.resolve_for_export(_oauth(client_secret=REF2), secret_store)
            )

    def test_duplicate_clears_token(self, secret_store):
        out = asyncio.run(
            self.handler.prepare_for_duplicate(
                _oauth(token=REF, client_secret=REF2),
                secret_store=secret_store,
                store_secrets_in_settings=False,
            )
        )
        assert out.token is None
        assert out.oauth.client_secret == REF2


# ═══════════════════════════════════════════════════════════════════════
# Export
# ═══════════════════════════════════════════════════════════════════════


class TestExport:
    def _provider(self, name, auth=None) -> ProviderConfig:
        data = {"type": "t", "name": name, "baseUrl": "https://x"}
        if auth is not None:
            data["auth"] = auth
        return ProviderConfig.model_validate(data)

    def test_redacted_export(self, secret_store):
        providers = [
            self._provider("a", {"method": "api-key", "apiKey": REF}),
            self._provider("b"),
            self._provider("c", {"method": "none"}),
        ]
        out = asyncio.run(export_providers(providers, secret_store, include_sensitive=False))
        assert "apiKey" not in out[0].to_wire()["auth"]
        assert out[1].auth is None
        assert out[2].auth.method == "none"

    def test_sensitive_export(self, secret_store):
        asyncio.run(secret_store.set_api_key(REF, "sk-stored"))
        provider = self._provider("a", {"method": "api-key", "apiKey": REF})
        out = asyncio.run(export_provider(provider, secret_store, include_sensitive=True))
        assert out.auth.api_key == "sk-stored"
        assert provider.auth.api_key == REF

    def test_missing_secrets_reported_together(self, secret_store):
        providers = [
            self._provider("a", {"method": "api-key", "apiKey": REF}),
            self._provider("b", {"method": "api-key", "apiKey": "sk-plain"}),
            self._provider("c", {"method": "api-key", "apiKey": REF2}),
        ]
        with pytest.raises(MissingSecretError) as excinfo:
            asyncio.run(export_providers(providers, secret_store, include_sensitive=True))
        assert excinfo.value.names == ["a", "c"]
        assert "a, c" in str(excinfo.value)
