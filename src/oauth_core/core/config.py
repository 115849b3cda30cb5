# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings.

The engine reads these values as capability lists: a request is valid only
if every scope, grant type, algorithm and method it names appears here.
"""

from typing import Final

from beartype import beartype
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

JWT_BEARER_GRANT: Final = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEVICE_CODE_GRANT: Final = "urn:ietf:params:oauth:grant-type:device_code"

HMAC_ALGORITHMS: Final = ("HS256", "HS384", "HS512")
ASYMMETRIC_ALGORITHMS: Final = (
    "ES256",
    "ES384",
    "ES512",
    "PS256",
    "PS384",
    "PS512",
    "RS256",
    "RS384",
    "RS512",
)
SIGNATURE_ALGORITHMS: Final = HMAC_ALGORITHMS + ASYMMETRIC_ALGORITHMS

KEY_WRAP_ALGORITHMS: Final = (
    "RSA-OAEP",
    "RSA-OAEP-256",
    "A128KW",
    "A192KW",
    "A256KW",
    "dir",
    "ECDH-ES",
    "ECDH-ES+A128KW",
    "ECDH-ES+A192KW",
    "ECDH-ES+A256KW",
)
CONTENT_ENCRYPTION_ALGORITHMS: Final = (
    "A128CBC-HS256",
    "A192CBC-HS384",
    "A256CBC-HS512",
    "A128GCM",
    "A192GCM",
    "A256GCM",
)


class Settings(BaseSettings):
    """Authorization server settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_",
        env_file=None,
        frozen=True,
        validate_default=True,
        extra="forbid",
    )

    # Identity
    issuer: str = Field(
        default="http://localhost:8000",
        description="Issuer identifier, used as base URL of every endpoint",
        min_length=1,
    )

    # Capabilities
    scopes: list[str] = Field(
        default_factory=lambda: [
            "openid",
            "profile",
            "email",
            "client:manage",
            "client:create",
            "client:read",
            "client:update",
            "client:delete",
        ],
        description="Scopes supported by the authorization server",
        min_length=1,
    )
    client_authentication_methods: list[str] = Field(
        default_factory=lambda: [
            "client_secret_basic",
            "client_secret_post",
            "client_secret_jwt",
            "private_key_jwt",
            "none",
        ],
        description="Client authentication methods accepted at the token endpoint",
        min_length=1,
    )
    client_authentication_signature_algorithms: list[str] = Field(
        default_factory=lambda: list(SIGNATURE_ALGORITHMS),
        description="JWS algorithms accepted for client assertions",
    )
    grant_types: list[str] = Field(
        default_factory=lambda: [
            "authorization_code",
            "client_credentials",
            "password",
            "refresh_token",
            DEVICE_CODE_GRANT,
            JWT_BEARER_GRANT,
        ],
        description="Grant types enabled on the token endpoint",
        min_length=1,
    )
    response_types: list[str] = Field(
        default_factory=lambda: [
            "code",
            "id_token",
            "token",
            "code id_token",
            "code token",
            "id_token token",
            "code id_token token",
        ],
        description="Response types clients may register",
    )
    pkce_methods: list[str] = Field(
        default_factory=lambda: ["S256", "plain"],
        description="PKCE code challenge methods",
        min_length=1,
    )
    acr_values: list[str] = Field(
        default_factory=list,
        description="Authentication Context Class References supported",
    )
    subject_types: list[str] = Field(
        default_factory=lambda: ["public", "pairwise"],
        description="Subject identifier types supported",
        min_length=1,
    )

    # Response signing and encryption
    id_token_signature_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "ES256", "PS256"],
        description="JWS algorithms for ID Tokens",
        min_length=1,
    )
    id_token_key_wrap_algorithms: list[str] = Field(
        default_factory=lambda: list(KEY_WRAP_ALGORITHMS),
        description="JWE key wrap algorithms for ID Tokens",
    )
    id_token_content_encryption_algorithms: list[str] = Field(
        default_factory=lambda: list(CONTENT_ENCRYPTION_ALGORITHMS),
        description="JWE content encryption algorithms for ID Tokens",
    )
    userinfo_signature_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "ES256", "PS256"],
        description="JWS algorithms for Userinfo responses",
    )
    userinfo_key_wrap_algorithms: list[str] = Field(
        default_factory=lambda: list(KEY_WRAP_ALGORITHMS),
        description="JWE key wrap algorithms for Userinfo responses",
    )
    userinfo_content_encryption_algorithms: list[str] = Field(
        default_factory=lambda: list(CONTENT_ENCRYPTION_ALGORITHMS),
        description="JWE content encryption algorithms for Userinfo responses",
    )
    authorization_signature_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "ES256", "PS256"],
        description="JWS algorithms for JARM authorization responses",
    )
    authorization_key_wrap_algorithms: list[str] = Field(
        default_factory=lambda: list(KEY_WRAP_ALGORITHMS),
        description="JWE key wrap algorithms for JARM authorization responses",
    )
    authorization_content_encryption_algorithms: list[str] = Field(
        default_factory=lambda: list(CONTENT_ENCRYPTION_ALGORITHMS),
        description="JWE content encryption algorithms for JARM responses",
    )

    # Token lifecycle
    access_token_lifetime: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Access token lifetime in seconds",
    )
    refresh_token_lifetime: int = Field(
        default=1209600,
        ge=3600,
        description="Refresh token lifetime in seconds",
    )
    registration_access_token_lifetime: int = Field(
        default=31536000,
        ge=3600,
        description="Registration access token lifetime in seconds",
    )
    id_token_lifetime: int = Field(
        default=86400,
        ge=60,
        description="ID Token lifetime in seconds",
    )
    enable_refresh_token_rotation: bool = Field(
        default=False,
        description="Replace the refresh token on every refresh_token grant",
    )
    enable_refresh_token_revocation: bool = Field(
        default=True,
        description="Allow refresh tokens at the revocation endpoint",
    )
    enable_refresh_token_introspection: bool = Field(
        default=True,
        description="Allow refresh tokens at the introspection endpoint",
    )
    device_polling_interval: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Minimum seconds between device_code token polls",
    )
    device_verification_uri: str | None = Field(
        default=None,
        description="Page where End-Users enter a user code, defaults to {issuer}/device",
    )

    # Logout
    enable_back_channel_logout: bool = Field(
        default=False,
        description="Allow clients to register a back-channel logout URI",
    )
    include_session_id_in_logout_token: bool = Field(
        default=False,
        description="Include the sid claim in logout tokens",
    )

    # Observability
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )

    @field_validator(
        "client_authentication_signature_algorithms",
        "id_token_signature_algorithms",
        "userinfo_signature_algorithms",
        "authorization_signature_algorithms",
    )
    @classmethod
    def validate_signature_algorithms(cls: type["Settings"], v: list[str]) -> list[str]:
        """Reject the unsecured ``none`` algorithm and unknown algorithms."""
        for alg in v:
            if alg == "none":
                raise ValueError('The JSON Web Signature Algorithm "none" is not allowed.')
            if alg not in SIGNATURE_ALGORITHMS:
                raise ValueError(f'Unsupported JSON Web Signature Algorithm "{alg}".')
        return v

    @model_validator(mode="after")
    def validate_refresh_token_settings(self) -> "Settings":
        """Refresh token features need the refresh_token grant."""
        if "refresh_token" not in self.grant_types and (
            self.enable_refresh_token_rotation
        ):
            raise ValueError(
                "Refresh Token Rotation requires the refresh_token grant type."
            )
        return self

    @property
    def token_endpoint(self) -> str:
        """Absolute URL of the token endpoint."""
        return f"{self.issuer.rstrip('/')}/oauth/token"

    @property
    def registration_endpoint(self) -> str:
        """Absolute URL of the registration endpoint."""
        return f"{self.issuer.rstrip('/')}/oauth/register"

    @property
    def device_authorization_endpoint(self) -> str:
        """Absolute URL of the device authorization endpoint."""
        return f"{self.issuer.rstrip('/')}/oauth/device-authorization"

    @property
    def userinfo_endpoint(self) -> str:
        """Absolute URL of the userinfo endpoint."""
        return f"{self.issuer.rstrip('/')}/oauth/userinfo"

    @property
    def device_verification_page(self) -> str:
        """Where End-Users enter the user code of a device authorization."""
        return self.device_verification_uri or f"{self.issuer.rstrip('/')}/device"


# Global settings instance
_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
