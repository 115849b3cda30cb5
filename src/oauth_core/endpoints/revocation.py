# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token revocation endpoint (RFC 7009)."""

from ..core.logging_utils import get_logger
from ..http import HttpRequest, HttpResponse
from ..models import AccessToken
from .lookup import ClientTokenEndpoint

logger = get_logger(__name__)


class RevocationEndpoint(ClientTokenEndpoint):
    """Revokes a token of the authenticated client.

    Unknown tokens and tokens of other clients are ignored, so the response
    never reveals whether a handle exists.
    """

    name = "revocation"
    path = "/oauth/revoke"
    http_methods = ("POST",)

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        client = (await self._client_authentication.authenticate(request)).unwrap()
        handle, hint = self._read_parameters(request)

        token = await self._find_token(handle, hint)
        if token is None:
            return HttpResponse()

        if not self._belongs_to(token, client):
            logger.warning("Client %s tried to revoke a token of another client", client.id)
            return HttpResponse()

        if isinstance(token, AccessToken):
            await self._access_token_service.revoke(token)
        elif self._refresh_token_service is not None:
            await self._refresh_token_service.revoke(token)

        logger.info("Client %s revoked a token", client.id)
        return HttpResponse()
