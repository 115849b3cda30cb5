# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Dynamic Client Registration (RFC 7591 / RFC 7592)."""

from .contexts import (
    DeleteRegistrationContext,
    GetRegistrationContext,
    PostRegistrationContext,
    PutRegistrationContext,
    RegistrationContext,
)
