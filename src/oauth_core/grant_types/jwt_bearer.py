# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""JWT Bearer authorization grant (RFC 7523 §2.1)."""

from typing import Any

import httpx
import jwt
from attrs import frozen

from ..assertions import (
    KeyResolutionError,
    read_header,
    resolve_verification_key,
    verify_assertion,
)
from ..client_authentication import ClientAuthenticationHandler
from ..core.config import JWT_BEARER_GRANT, Settings
from ..core.logging_utils import get_logger
from ..exceptions import InvalidGrant
from ..models import Client, User
from ..scopes import ScopeHandler
from ..services.interfaces import AccessTokenService, UserService
from .base import GrantType, TokenContext, TokenResponse, optional_string, required_string

logger = get_logger(__name__)

REQUIRED_CLAIMS = ["iss", "sub", "aud", "exp"]


@frozen
class JwtBearerContext(TokenContext):
    """Validated assertion with the End-User it speaks for."""

    claims: dict[str, Any]
    user: User
    scopes: list[str]


class JwtBearerGrant(GrantType[JwtBearerContext]):
    """Exchanges a client-signed JWT about an End-User for an access token."""

    name = JWT_BEARER_GRANT

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        user_service: UserService,
        scope_handler: ScopeHandler,
    ) -> None:
        """Initialize grant."""
        super().__init__(settings, client_authentication, access_token_service)
        self._user_service = user_service
        self._scope_handler = scope_handler

    async def _validate(self, parameters: dict[str, Any], client: Client) -> JwtBearerContext:
        assertion = required_string(parameters, "assertion")
        scope = optional_string(parameters, "scope")

        self._scope_handler.check_requested_scope(scope)
        scopes = self._scope_handler.get_allowed_scopes(client, scope)

        claims = await self._verify(assertion, client)

        user = await self._user_service.find_one(claims["sub"])
        if user is None:
            raise InvalidGrant("The provided Assertion is invalid.")

        return JwtBearerContext(
            parameters=parameters,
            client=client,
            grant_type=self.name,
            claims=claims,
            user=user,
            scopes=scopes,
        )

    async def _verify(self, assertion: str, client: Client) -> dict[str, Any]:
        try:
            header = read_header(assertion)
            alg = header.get("alg")
            if not isinstance(alg, str) or alg == "none":
                raise InvalidGrant("The provided Assertion is invalid.")

            key = await resolve_verification_key(client, header)
            claims = verify_assertion(
                assertion,
                key,
                alg,
                audience=self._settings.token_endpoint,
                issuer=client.id,
                required=REQUIRED_CLAIMS,
            )
        except (jwt.PyJWTError, KeyResolutionError, httpx.HTTPError, TypeError, ValueError) as e:
            logger.warning("Rejected jwt-bearer assertion of client %s: %s", client.id, e)
            raise InvalidGrant("The provided Assertion is invalid.") from e

        if not isinstance(claims.get("sub"), str):
            raise InvalidGrant("The provided Assertion is invalid.")
        return claims

    async def _issue_tokens(self, context: JwtBearerContext) -> TokenResponse:
        access_token = await self._access_token_service.create(
            context.scopes, context.client, context.user
        )
        return self._token_response(access_token)
