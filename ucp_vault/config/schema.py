"""Provider configuration models.

Pydantic models for the endpoint records stored under ``endpoints`` in
every configuration scope, including the ``auth`` payloads that may
carry secret references.  Field names are snake_case in Python and
camelCase on the wire; unknown keys are preserved so that a validate →
dump round trip never drops settings this package does not know about.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

NO_AUTH_METHOD = "none"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> Dict[str, Any]:
        """Dump with camelCase keys, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ── OAuth 2.0 token payload ──────────────────────────────────────────────


class OAuth2TokenData(_WireModel):
    """Token set persisted (as JSON) under an ``oauth2-token`` storage key."""

    access_token: str = Field(..., alias="accessToken", min_length=1)
    token_type: str = Field(..., alias="tokenType", min_length=1)
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    expires_at: Optional[int] = Field(
        default=None,
        alias="expiresAt",
        description="Expiry as milliseconds since the epoch.",
    )
    scope: Optional[str] = None

    @field_validator("access_token", "token_type")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


# ── OAuth 2.0 grant configs ──────────────────────────────────────────────


class _OAuth2ConfigBase(_WireModel):
    token_url: str = Field(..., alias="tokenUrl")
    revocation_url: Optional[str] = Field(default=None, alias="revocationUrl")
    scopes: Optional[List[str]] = None


class OAuth2AuthCodeConfig(_OAuth2ConfigBase):
    grant_type: Literal["authorization_code"] = Field(..., alias="grantType")
    authorization_url: str = Field(..., alias="authorizationUrl")
    client_id: str = Field(..., alias="clientId")
    client_secret: Optional[str] = Field(
        default=None,
        alias="clientSecret",
        description="Plain secret or secret reference.",
    )
    pkce: Optional[bool] = None
    redirect_uri: Optional[str] = Field(default=None, alias="redirectUri")


class OAuth2ClientCredentialsConfig(_OAuth2ConfigBase):
    grant_type: Literal["client_credentials"] = Field(..., alias="grantType")
    client_id: str = Field(..., alias="clientId")
    client_secret: str = Field(
        ...,
        alias="clientSecret",
        description="Plain secret or secret reference.",
    )


class OAuth2DeviceCodeConfig(_OAuth2ConfigBase):
    grant_type: Literal["device_code"] = Field(..., alias="grantType")
    device_authorization_url: str = Field(..., alias="deviceAuthorizationUrl")
    client_id: str = Field(..., alias="clientId")


OAuth2Config = Annotated[
    Union[OAuth2AuthCodeConfig, OAuth2ClientCredentialsConfig, OAuth2DeviceCodeConfig],
    Field(discriminator="grant_type"),
]


# ── Auth payloads ────────────────────────────────────────────────────────


class NoAuthConfig(_WireModel):
    method: Literal["none"]


class ApiKeyAuthConfig(_WireModel):
    method: Literal["api-key"]
    label: Optional[str] = None
    description: Optional[str] = None
    api_key: Optional[str] = Field(
        default=None,
        alias="apiKey",
        description="Plain API key or secret reference.",
    )


class OAuth2AuthConfig(_WireModel):
    method: Literal["oauth2"]
    label: Optional[str] = None
    description: Optional[str] = None
    identity_id: Optional[str] = Field(default=None, alias="identityId")
    token: Optional[str] = Field(
        default=None,
        description="Serialized OAuth2TokenData or secret reference.",
    )
    oauth: OAuth2Config


AuthConfig = Annotated[
    Union[NoAuthConfig, ApiKeyAuthConfig, OAuth2AuthConfig],
    Field(discriminator="method"),
]


# ── Provider ─────────────────────────────────────────────────────────────


class ProviderConfig(_WireModel):
    """One configured endpoint."""

    type: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    base_url: str = Field(..., alias="baseUrl", min_length=1)
    models: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    auth: Optional[AuthConfig] = None


def get_auth_api_key(auth: Optional[BaseModel]) -> Optional[str]:
    """Return the ``apiKey`` string carried by *auth*, if any."""
    if auth is None:
        return None
    api_key = getattr(auth, "api_key", None)
    return api_key if isinstance(api_key, str) else None
