# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Immutable contexts produced by the registration validators.

``metadata`` is the validated client metadata keyed by
:class:`~oauth_core.models.Client` field names, with defaults applied. A
client service builds or replaces a client directly from it.
"""

from typing import Any

from attrs import field, frozen

from ..models import AccessToken, Client


@frozen
class PostRegistrationContext:
    """Validated client creation request."""

    parameters: dict[str, Any]
    access_token: AccessToken
    metadata: dict[str, Any] = field(factory=dict)


@frozen
class GetRegistrationContext:
    """Validated client read request."""

    parameters: dict[str, Any]
    access_token: AccessToken
    client: Client


@frozen
class PutRegistrationContext:
    """Validated full client update request."""

    parameters: dict[str, Any]
    access_token: AccessToken
    client: Client
    metadata: dict[str, Any] = field(factory=dict)


@frozen
class DeleteRegistrationContext:
    """Validated client deletion request."""

    parameters: dict[str, Any]
    access_token: AccessToken
    client: Client


RegistrationContext = (
    PostRegistrationContext
    | GetRegistrationContext
    | PutRegistrationContext
    | DeleteRegistrationContext
)
