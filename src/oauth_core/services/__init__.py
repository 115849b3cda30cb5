# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Storage service contracts and in-memory reference implementations."""

from .interfaces import (
    AccessTokenService,
    AuthorizationCodeService,
    ClientAssertionService,
    ClientService,
    DeviceCodeService,
    RefreshTokenService,
    ResourceOwnerUserService,
    RotatingRefreshTokenService,
    UserinfoService,
    UserService,
    require_methods,
)

__all__ = [
    "AccessTokenService",
    "AuthorizationCodeService",
    "ClientAssertionService",
    "ClientService",
    "DeviceCodeService",
    "RefreshTokenService",
    "ResourceOwnerUserService",
    "RotatingRefreshTokenService",
    "UserService",
    "UserinfoService",
    "require_methods",
]
