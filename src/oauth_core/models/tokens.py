# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token and code models.

All of them share the same lifecycle: created by a grant or by the
registration flow, then only ever transitioned to ``is_revoked=True``.
"""

from datetime import datetime

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig, utc_now
from .client import Client
from .user import Consent, Session, User


@beartype
class TokenModel(BaseModelConfig):
    """Fields common to every token-like artifact."""

    scopes: list[str] = Field(default_factory=list)
    issued_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    valid_after: datetime = Field(default_factory=utc_now)
    is_revoked: bool = False
    user: User | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the artifact is past its expiration."""
        return (now or utc_now()) >= self.expires_at

    def is_not_yet_valid(self, now: datetime | None = None) -> bool:
        """Check whether the artifact is before its not-before time."""
        return (now or utc_now()) < self.valid_after

    def is_active(self, now: datetime | None = None) -> bool:
        """Not revoked, already valid and not expired."""
        moment = now or utc_now()
        return not (self.is_revoked or self.is_not_yet_valid(moment) or self.is_expired(moment))


@beartype
class AccessToken(TokenModel):
    """Bearer access token.

    ``client`` is None for Initial Access Tokens used to register new clients.
    """

    handle: str = Field(..., min_length=1)
    client: Client | None = None


@beartype
class RefreshToken(TokenModel):
    """Refresh token bound to the client it was issued to."""

    handle: str = Field(..., min_length=1)
    client: Client


@beartype
class AuthorizationCode(TokenModel):
    """Authorization code together with the authorization request that produced it."""

    code: str = Field(..., min_length=1)
    client: Client
    user: User
    parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Original authorization request parameters",
    )
    session: Session | None = None
    consent: Consent

    @property
    def redirect_uri(self) -> str | None:
        """Redirect URI bound at authorization time."""
        return self.parameters.get("redirect_uri")

    @property
    def code_challenge(self) -> str | None:
        """PKCE challenge recorded at authorization time."""
        return self.parameters.get("code_challenge")

    @property
    def code_challenge_method(self) -> str:
        """PKCE method recorded at authorization time, ``plain`` by default."""
        return self.parameters.get("code_challenge_method") or "plain"


@beartype
class DeviceCode(TokenModel):
    """Device authorization grant code.

    ``is_authorized`` is None while the End-User has not decided yet.
    """

    code: str = Field(..., min_length=1)
    user_code: str = Field(..., min_length=1)
    client: Client
    is_authorized: bool | None = None
