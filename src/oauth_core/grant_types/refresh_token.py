# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Refresh Token grant (RFC 6749 §6) with optional rotation."""

from typing import Any, cast

from attrs import frozen

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..core.security import constant_time_compare
from ..exceptions import InvalidGrant
from ..models import Client, RefreshToken, utc_now
from ..scopes import ScopeHandler
from ..services.interfaces import (
    AccessTokenService,
    RefreshTokenService,
    RotatingRefreshTokenService,
    require_methods,
)
from .base import GrantType, TokenContext, TokenResponse, optional_string, required_string


@frozen
class RefreshTokenContext(TokenContext):
    """Validated refresh request."""

    refresh_token: RefreshToken
    scopes: list[str]


class RefreshTokenGrant(GrantType[RefreshTokenContext]):
    """Issues a new access token from a refresh token.

    With rotation enabled the presented refresh token is revoked and replaced;
    otherwise the same handle is returned until it is revoked or expires.
    """

    name = "refresh_token"

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        refresh_token_service: RefreshTokenService,
        scope_handler: ScopeHandler,
    ) -> None:
        """Initialize grant.

        Raises:
            ConfigurationError: if rotation is enabled and the service cannot rotate.
        """
        super().__init__(settings, client_authentication, access_token_service, refresh_token_service)
        self._refresh_tokens = refresh_token_service
        self._scope_handler = scope_handler
        self._rotating: RotatingRefreshTokenService | None = None
        if settings.enable_refresh_token_rotation:
            require_methods(refresh_token_service, "RefreshTokenService", ["rotate"])
            self._rotating = cast(RotatingRefreshTokenService, refresh_token_service)

    async def _validate(self, parameters: dict[str, Any], client: Client) -> RefreshTokenContext:
        handle = required_string(parameters, "refresh_token")
        scope = optional_string(parameters, "scope")

        refresh_token = await self._refresh_tokens.find_one(handle)
        if refresh_token is None:
            raise InvalidGrant("Invalid Refresh Token.")

        if scope is None:
            scopes = list(refresh_token.scopes)
        else:
            self._scope_handler.check_requested_scope(scope)
            scopes = self._scope_handler.get_allowed_scopes(client, scope)
            for requested in scopes:
                if requested not in refresh_token.scopes:
                    raise InvalidGrant(f'The scope "{requested}" was not previously granted.')

        return RefreshTokenContext(
            parameters=parameters,
            client=client,
            grant_type=self.name,
            refresh_token=refresh_token,
            scopes=scopes,
        )

    async def _issue_tokens(self, context: RefreshTokenContext) -> TokenResponse:
        refresh_token = context.refresh_token
        self._check_refresh_token(refresh_token, context.client)

        if self._rotating is not None:
            rotated = await self._rotating.rotate(refresh_token)
            if rotated is None:
                raise InvalidGrant("Revoked Refresh Token.")
            refresh_token = rotated

        access_token = await self._access_token_service.create(
            context.scopes, context.client, refresh_token.user
        )
        return self._token_response(access_token, refresh_token)

    def _check_refresh_token(self, refresh_token: RefreshToken, client: Client) -> None:
        now = utc_now()
        if not constant_time_compare(refresh_token.client.id, client.id):
            raise InvalidGrant("Mismatching Client Identifier.")
        if refresh_token.is_not_yet_valid(now):
            raise InvalidGrant("Refresh Token not yet valid.")
        if refresh_token.is_expired(now):
            raise InvalidGrant("Expired Refresh Token.")
        if refresh_token.is_revoked:
            raise InvalidGrant("Revoked Refresh Token.")
