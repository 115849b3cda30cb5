# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client authentication methods and the handler that selects among them."""

from .base import ClientAuthenticationMethod
from .handler import CLIENT_AUTHENTICATION_METHODS, ClientAuthenticationHandler
from .jwt_assertion import (
    CLIENT_ASSERTION_TYPE,
    ClientSecretJwtAuthentication,
    PrivateKeyJwtAuthentication,
)
from .secret import (
    ClientSecretBasicAuthentication,
    ClientSecretPostAuthentication,
    NoneClientAuthentication,
)

__all__ = [
    "CLIENT_ASSERTION_TYPE",
    "CLIENT_AUTHENTICATION_METHODS",
    "ClientAuthenticationHandler",
    "ClientAuthenticationMethod",
    "ClientSecretBasicAuthentication",
    "ClientSecretJwtAuthentication",
    "ClientSecretPostAuthentication",
    "NoneClientAuthentication",
    "PrivateKeyJwtAuthentication",
]
