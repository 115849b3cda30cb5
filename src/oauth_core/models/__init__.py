# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain models for the authorization server."""

from .base import BaseModelConfig, TimestampedModel, to_timestamp, utc_now
from .client import ApplicationType, Client, SubjectType
from .tokens import AccessToken, AuthorizationCode, DeviceCode, RefreshToken, TokenModel
from .user import Consent, Session, User

__all__ = [
    "BaseModelConfig",
    "TimestampedModel",
    "to_timestamp",
    "utc_now",
    "ApplicationType",
    "Client",
    "SubjectType",
    "AccessToken",
    "AuthorizationCode",
    "DeviceCode",
    "RefreshToken",
    "TokenModel",
    "Consent",
    "Session",
    "User",
]
