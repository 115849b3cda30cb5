# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Resource Owner Password Credentials grant (RFC 6749 §4.3)."""

from typing import Any

from attrs import frozen

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..exceptions import InvalidGrant
from ..models import Client, User
from ..scopes import ScopeHandler
from ..services.interfaces import (
    AccessTokenService,
    RefreshTokenService,
    ResourceOwnerUserService,
    require_methods,
)
from .base import GrantType, TokenContext, TokenResponse, optional_string, required_string


@frozen
class PasswordContext(TokenContext):
    """Validated password request with the authenticated End-User."""

    user: User
    scopes: list[str]


class PasswordGrant(GrantType[PasswordContext]):
    """Authenticates the End-User by username and password."""

    name = "password"

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        user_service: ResourceOwnerUserService,
        scope_handler: ScopeHandler,
        refresh_token_service: RefreshTokenService | None = None,
    ) -> None:
        """Initialize grant.

        Raises:
            ConfigurationError: if the user service cannot check credentials.
        """
        super().__init__(settings, client_authentication, access_token_service, refresh_token_service)
        require_methods(user_service, "UserService", ["find_by_resource_owner_credentials"])
        self._user_service = user_service
        self._scope_handler = scope_handler

    async def _validate(self, parameters: dict[str, Any], client: Client) -> PasswordContext:
        username = required_string(parameters, "username")
        password = required_string(parameters, "password")
        scope = optional_string(parameters, "scope")

        self._scope_handler.check_requested_scope(scope)
        scopes = self._scope_handler.get_allowed_scopes(client, scope)

        user = await self._user_service.find_by_resource_owner_credentials(username, password)
        if user is None:
            raise InvalidGrant("Invalid Credentials.")

        return PasswordContext(
            parameters=parameters,
            client=client,
            grant_type=self.name,
            user=user,
            scopes=scopes,
        )

    async def _issue_tokens(self, context: PasswordContext) -> TokenResponse:
        access_token = await self._access_token_service.create(
            context.scopes, context.client, context.user
        )
        refresh_token = await self._create_refresh_token(
            context.scopes, context.client, context.user
        )
        return self._token_response(access_token, refresh_token)
