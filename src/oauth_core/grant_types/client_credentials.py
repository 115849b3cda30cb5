# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client Credentials grant (RFC 6749 §4.4)."""

from typing import Any

from attrs import frozen

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..models import Client
from ..scopes import ScopeHandler
from ..services.interfaces import AccessTokenService
from .base import GrantType, TokenContext, TokenResponse, optional_string


@frozen
class ClientCredentialsContext(TokenContext):
    """Validated client credentials request."""

    scopes: list[str]


class ClientCredentialsGrant(GrantType[ClientCredentialsContext]):
    """Issues an access token to the client acting on its own behalf."""

    name = "client_credentials"

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        scope_handler: ScopeHandler,
    ) -> None:
        """Initialize grant."""
        super().__init__(settings, client_authentication, access_token_service)
        self._scope_handler = scope_handler

    async def _validate(
        self, parameters: dict[str, Any], client: Client
    ) -> ClientCredentialsContext:
        scope = optional_string(parameters, "scope")
        self._scope_handler.check_requested_scope(scope)
        scopes = self._scope_handler.get_allowed_scopes(client, scope)

        return ClientCredentialsContext(
            parameters=parameters, client=client, grant_type=self.name, scopes=scopes
        )

    async def _issue_tokens(self, context: ClientCredentialsContext) -> TokenResponse:
        # No End-User is involved, so no refresh token is issued.
        access_token = await self._access_token_service.create(context.scopes, context.client, None)
        return self._token_response(access_token)
