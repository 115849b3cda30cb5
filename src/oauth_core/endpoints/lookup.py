# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token lookup shared by the revocation and introspection endpoints."""

from ..client_authentication import ClientAuthenticationHandler
from ..core.security import constant_time_compare
from ..exceptions import InvalidRequest, UnsupportedTokenType
from ..http import HttpRequest
from ..models import AccessToken, Client, RefreshToken
from ..services.interfaces import AccessTokenService, RefreshTokenService
from .base import Endpoint


class ClientTokenEndpoint(Endpoint):
    """Endpoint where an authenticated client presents one of its tokens."""

    def __init__(
        self,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        refresh_token_service: RefreshTokenService | None = None,
        *,
        include_refresh_tokens: bool = True,
    ) -> None:
        """Initialize endpoint.

        Refresh tokens are only looked up when a refresh token service is
        configured and ``include_refresh_tokens`` is set.
        """
        self._client_authentication = client_authentication
        self._access_token_service = access_token_service
        self._refresh_token_service = refresh_token_service if include_refresh_tokens else None

    @property
    def supported_token_types(self) -> tuple[str, ...]:
        """Values accepted for ``token_type_hint``."""
        if self._refresh_token_service is None:
            return ("access_token",)
        return ("access_token", "refresh_token")

    def _read_parameters(self, request: HttpRequest) -> tuple[str, str | None]:
        parameters = request.form()

        token = parameters.get("token")
        if not isinstance(token, str) or not token:
            raise InvalidRequest('Invalid parameter "token".')

        hint = parameters.get("token_type_hint")
        if hint is not None:
            if not isinstance(hint, str):
                raise InvalidRequest('Invalid parameter "token_type_hint".')
            if hint not in self.supported_token_types:
                raise UnsupportedTokenType(f'Unsupported token_type_hint "{hint}".')
        return token, hint

    async def _find_token(
        self, handle: str, hint: str | None
    ) -> AccessToken | RefreshToken | None:
        """Look the handle up, trying the hinted token type first (RFC 7009 §2.1)."""
        order = list(self.supported_token_types)
        if hint == "refresh_token":
            order.reverse()

        for token_type in order:
            token: AccessToken | RefreshToken | None
            if token_type == "access_token":
                token = await self._access_token_service.find_one(handle)
            elif self._refresh_token_service is not None:
                token = await self._refresh_token_service.find_one(handle)
            else:
                token = None
            if token is not None:
                return token
        return None

    @staticmethod
    def _belongs_to(token: AccessToken | RefreshToken, client: Client) -> bool:
        return token.client is not None and constant_time_compare(token.client.id, client.id)
