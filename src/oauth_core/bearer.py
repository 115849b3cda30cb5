# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Bearer token authorization (RFC 6750 §2.1) for the registration endpoint."""

import re

from beartype import beartype

from .core.logging_utils import get_logger
from .core.result_types import Err, Ok, Result
from .exceptions import InvalidRequest, InvalidToken, OAuth2Error
from .http import HttpRequest
from .models import AccessToken, utc_now
from .services.interfaces import AccessTokenService

logger = get_logger(__name__)

# b64token from RFC 6750 §2.1
_BEARER_PATTERN = re.compile(r"^Bearer ([A-Za-z0-9\-._~+/]+=*)$")


class BearerTokenAuthorization:
    """Resolves the access token presented in the Authorization header."""

    def __init__(self, access_token_service: AccessTokenService) -> None:
        """Initialize bearer authorization."""
        self._access_token_service = access_token_service

    @beartype
    async def authorize(self, request: HttpRequest) -> Result[AccessToken, OAuth2Error]:
        """Return the active access token of ``request``."""
        try:
            return Ok(await self._find_active_token(request))
        except OAuth2Error as e:
            logger.warning("Bearer authorization failed: %s", e.error_description)
            return Err(e)

    async def _find_active_token(self, request: HttpRequest) -> AccessToken:
        authorization = request.header("authorization")
        if authorization is None:
            raise InvalidRequest("Missing Bearer Token.")

        match = _BEARER_PATTERN.match(authorization)
        if match is None:
            raise InvalidToken("Invalid Bearer Token.")

        token = await self._access_token_service.find_one(match.group(1))
        if token is None:
            raise InvalidToken("Invalid Access Token.")

        now = utc_now()
        if token.is_expired(now):
            raise InvalidToken("Expired Access Token.")
        if token.is_not_yet_valid(now):
            raise InvalidToken("The provided Access Token is not yet valid.")
        if token.is_revoked:
            raise InvalidToken("Revoked Access Token.")

        return token
