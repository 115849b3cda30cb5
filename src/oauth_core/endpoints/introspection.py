# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token introspection endpoint (RFC 7662)."""

from typing import Any, Final

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..http import HttpRequest, HttpResponse
from ..models import AccessToken, RefreshToken, to_timestamp
from ..services.interfaces import AccessTokenService, RefreshTokenService
from .lookup import ClientTokenEndpoint

logger = get_logger(__name__)

INACTIVE_TOKEN: Final = {"active": False}


class IntrospectionEndpoint(ClientTokenEndpoint):
    """Reports the metadata of a token of the authenticated client."""

    name = "introspection"
    path = "/oauth/introspect"
    http_methods = ("POST",)

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        refresh_token_service: RefreshTokenService | None = None,
    ) -> None:
        """Initialize introspection endpoint."""
        super().__init__(
            client_authentication,
            access_token_service,
            refresh_token_service,
            include_refresh_tokens=settings.enable_refresh_token_introspection,
        )
        self._settings = settings

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        client = (await self._client_authentication.authenticate(request)).unwrap()
        handle, hint = self._read_parameters(request)

        token = await self._find_token(handle, hint)
        if token is None or not self._belongs_to(token, client) or not token.is_active():
            return HttpResponse.from_json(INACTIVE_TOKEN)

        return HttpResponse.from_json(self._token_metadata(token))

    def _token_metadata(self, token: AccessToken | RefreshToken) -> dict[str, Any]:
        client_id = token.client.id if token.client is not None else None
        return {
            "active": True,
            "scope": " ".join(token.scopes),
            "client_id": client_id,
            "token_type": "Bearer" if isinstance(token, AccessToken) else "refresh_token",
            "exp": to_timestamp(token.expires_at),
            "iat": to_timestamp(token.issued_at),
            "nbf": to_timestamp(token.valid_after),
            "sub": token.user.id if token.user is not None else None,
            "username": token.user.username if token.user is not None else None,
            "aud": [client_id] if client_id is not None else None,
            "iss": self._settings.issuer,
        }
