# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client domain model.

A Client is the registered application that requests tokens. Its metadata
mirrors the OpenID Connect Dynamic Client Registration parameters.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from beartype import beartype
from pydantic import Field, model_validator

from .base import TimestampedModel, utc_now


class ApplicationType(str, Enum):
    """Kind of application, which drives the redirect URI policy."""

    WEB = "web"
    NATIVE = "native"


class SubjectType(str, Enum):
    """Subject identifier type requested by the client."""

    PUBLIC = "public"
    PAIRWISE = "pairwise"


@beartype
class Client(TimestampedModel):
    """Registered OAuth 2.0 client."""

    id: str = Field(..., min_length=1, description="Client identifier")
    secret: str | None = Field(default=None, description="Client secret")
    secret_expires_at: datetime | None = Field(
        default=None, description="Expiration of the secret, None if it never expires"
    )
    name: str | None = Field(default=None, description="Human readable client name")

    redirect_uris: list[str] = Field(default_factory=list)
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    grant_types: list[str] = Field(default_factory=lambda: ["authorization_code"])
    application_type: ApplicationType = Field(default=ApplicationType.WEB)

    authentication_method: str = Field(default="client_secret_basic")
    authentication_signing_algorithm: str | None = Field(default=None)

    scopes: list[str] = Field(default_factory=list)

    client_uri: str | None = None
    logo_uri: str | None = None
    contacts: list[str] | None = None
    policy_uri: str | None = None
    tos_uri: str | None = None
    jwks_uri: str | None = None
    jwks: dict[str, Any] | None = None

    subject_type: SubjectType = Field(default=SubjectType.PUBLIC)
    sector_identifier_uri: str | None = None

    id_token_signed_response_algorithm: str = Field(default="RS256")
    id_token_encrypted_response_key_wrap: str | None = None
    id_token_encrypted_response_content_encryption: str | None = None
    userinfo_signed_response_algorithm: str | None = None
    userinfo_encrypted_response_key_wrap: str | None = None
    userinfo_encrypted_response_content_encryption: str | None = None
    authorization_signed_response_algorithm: str | None = None
    authorization_encrypted_response_key_wrap: str | None = None
    authorization_encrypted_response_content_encryption: str | None = None

    default_max_age: int | None = Field(default=None, gt=0)
    require_auth_time: bool = False
    default_acr_values: list[str] | None = None
    initiate_login_uri: str | None = None
    post_logout_redirect_uris: list[str] | None = None
    backchannel_logout_uri: str | None = None
    backchannel_logout_session_required: bool = False
    software_id: str | None = None
    software_version: str | None = None

    @model_validator(mode="after")
    def validate_key_material(self) -> "Client":
        """At most one key source, and pairwise subjects need a sector."""
        if self.jwks_uri is not None and self.jwks is not None:
            raise ValueError('Only one of "jwks_uri" and "jwks" may be set.')
        if self.subject_type == SubjectType.PAIRWISE and self.sector_identifier_uri is None:
            raise ValueError('The Subject Type "pairwise" requires a Sector Identifier URI.')
        return self

    def is_secret_expired(self, now: datetime | None = None) -> bool:
        """Check whether the client secret has passed its expiration."""
        if self.secret_expires_at is None:
            return False
        return (now or utc_now()) >= self.secret_expires_at
