# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""End-User, Session and Consent models."""

from datetime import datetime

from beartype import beartype
from pydantic import Field

from .base import TimestampedModel
from .client import Client


@beartype
class User(TimestampedModel):
    """End-User known to the authorization server."""

    id: str = Field(..., min_length=1, description="Subject identifier")
    username: str | None = Field(default=None, description="Login name")
    name: str | None = Field(default=None, description="Full name")
    email: str | None = Field(default=None, description="Preferred e-mail address")
    email_verified: bool = Field(default=False)


@beartype
class Session(TimestampedModel):
    """Authentication session of an End-User at the authorization server."""

    id: str = Field(..., min_length=1)
    user: User | None = None
    expires_at: datetime | None = None


@beartype
class Consent(TimestampedModel):
    """Scopes an End-User granted to a Client."""

    id: str = Field(..., min_length=1)
    scopes: list[str] = Field(default_factory=list)
    client: Client
    user: User
    expires_at: datetime | None = None
