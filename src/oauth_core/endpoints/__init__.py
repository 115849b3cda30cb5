# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""HTTP endpoints of the Authorization Server."""

from .base import Endpoint, error_response
from .device_authorization import DeviceAuthorizationEndpoint
from .introspection import IntrospectionEndpoint
from .registration import RegistrationEndpoint, client_information
from .revocation import RevocationEndpoint
from .token import TokenEndpoint
from .userinfo import UserinfoEndpoint

__all__ = [
    "DeviceAuthorizationEndpoint",
    "Endpoint",
    "IntrospectionEndpoint",
    "RegistrationEndpoint",
    "RevocationEndpoint",
    "TokenEndpoint",
    "UserinfoEndpoint",
    "client_information",
    "error_response",
]
