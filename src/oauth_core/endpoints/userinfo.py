# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Userinfo endpoint (OIDC Core §5.3)."""

from ..bearer import BearerTokenAuthorization
from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..exceptions import InsufficientScope, InvalidToken, ServerError
from ..http import HttpRequest, HttpResponse
from ..services.interfaces import UserinfoService
from ..signing import ServerSigningKeys
from .base import Endpoint

logger = get_logger(__name__)


class UserinfoEndpoint(Endpoint):
    """Returns claims about the End-User an access token was issued for.

    Clients that registered ``userinfo_signed_response_alg`` receive a
    signed JWT; everyone else receives plain JSON.
    """

    name = "userinfo"
    path = "/oauth/userinfo"
    http_methods = ("GET", "POST")

    def __init__(
        self,
        settings: Settings,
        bearer_authorization: BearerTokenAuthorization,
        user_service: UserinfoService,
        signing_keys: ServerSigningKeys | None = None,
    ) -> None:
        """Initialize endpoint."""
        self._settings = settings
        self._bearer_authorization = bearer_authorization
        self._user_service = user_service
        self._signing_keys = signing_keys

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        access_token = (await self._bearer_authorization.authorize(request)).unwrap()

        if "openid" not in access_token.scopes:
            raise InsufficientScope(
                'The provided Access Token is missing the required scope "openid".',
                headers={"WWW-Authenticate": 'Bearer error="insufficient_scope", scope="openid"'},
            )

        client, user = access_token.client, access_token.user
        if client is None or user is None:
            raise InvalidToken("Invalid Credentials.")

        claims = {
            **(await self._user_service.get_userinfo(user, list(access_token.scopes))),
            "sub": user.id,
        }

        if client.userinfo_encrypted_response_key_wrap is not None:
            raise ServerError("Encrypted Userinfo responses are not supported.")

        algorithm = client.userinfo_signed_response_algorithm
        if algorithm is None:
            return HttpResponse.from_json(claims)

        if self._signing_keys is None:
            raise ServerError("No signing keys are configured.")

        token = self._signing_keys.sign(
            {**claims, "iss": self._settings.issuer, "aud": client.id}, algorithm, client
        )
        logger.debug("Returning signed userinfo to client %s", client.id)
        return HttpResponse(
            headers={"Content-Type": "application/jwt"}, body=token.encode("ascii")
        )
