# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token endpoint grant type processors."""

from .authorization_code import AuthorizationCodeContext, AuthorizationCodeGrant
from .base import GrantType, TokenContext, TokenResponse
from .client_credentials import ClientCredentialsContext, ClientCredentialsGrant
from .device_code import DeviceCodeContext, DeviceCodeGrant
from .jwt_bearer import JwtBearerContext, JwtBearerGrant
from .password import PasswordContext, PasswordGrant
from .refresh_token import RefreshTokenContext, RefreshTokenGrant

__all__ = [
    "AuthorizationCodeContext",
    "AuthorizationCodeGrant",
    "ClientCredentialsContext",
    "ClientCredentialsGrant",
    "DeviceCodeContext",
    "DeviceCodeGrant",
    "GrantType",
    "JwtBearerContext",
    "JwtBearerGrant",
    "PasswordContext",
    "PasswordGrant",
    "RefreshTokenContext",
    "RefreshTokenGrant",
    "TokenContext",
    "TokenResponse",
]
