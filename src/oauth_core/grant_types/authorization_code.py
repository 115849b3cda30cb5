# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Authorization Code grant (RFC 6749 §4.1.3) with PKCE (RFC 7636)."""

from typing import Any
from urllib.parse import urlsplit

from attrs import frozen

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.security import constant_time_compare
from ..exceptions import InvalidGrant, InvalidRequest
from ..id_token import IdTokenHandler
from ..models import AuthorizationCode, Client, utc_now
from ..pkce import PkceMethod, get_pkce_method
from ..services.interfaces import (
    AccessTokenService,
    AuthorizationCodeService,
    RefreshTokenService,
)
from .base import GrantType, TokenContext, TokenResponse, optional_string, required_string

logger = get_logger(__name__)


@frozen
class AuthorizationCodeContext(TokenContext):
    """Validated authorization code exchange."""

    authorization_code: AuthorizationCode
    redirect_uri: str
    code_verifier: str | None


class AuthorizationCodeGrant(GrantType[AuthorizationCodeContext]):
    """Exchanges a single-use authorization code for tokens."""

    name = "authorization_code"

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        authorization_code_service: AuthorizationCodeService,
        refresh_token_service: RefreshTokenService | None = None,
        id_token_handler: IdTokenHandler | None = None,
    ) -> None:
        """Initialize grant and resolve the enabled PKCE methods.

        An ID Token is issued alongside the tokens whenever ``openid`` was
        granted and ``id_token_handler`` is set.

        Raises:
            ConfigurationError: if settings enable an unknown PKCE method.
        """
        super().__init__(settings, client_authentication, access_token_service, refresh_token_service)
        self._authorization_code_service = authorization_code_service
        self._id_token_handler = id_token_handler
        self._pkce_methods: dict[str, PkceMethod] = {
            method: get_pkce_method(method) for method in settings.pkce_methods
        }

    async def _validate(
        self, parameters: dict[str, Any], client: Client
    ) -> AuthorizationCodeContext:
        code = required_string(parameters, "code")
        redirect_uri = required_string(parameters, "redirect_uri")
        code_verifier = optional_string(parameters, "code_verifier")

        parsed = urlsplit(redirect_uri)
        if not parsed.scheme or not parsed.netloc:
            raise InvalidRequest('Invalid parameter "redirect_uri".')
        if parsed.fragment:
            raise InvalidRequest("The Redirect URI MUST NOT have a fragment component.")

        authorization_code = await self._authorization_code_service.find_one(code)
        if authorization_code is None:
            raise InvalidGrant("Invalid Authorization Code.")

        return AuthorizationCodeContext(
            parameters=parameters,
            client=client,
            grant_type=self.name,
            authorization_code=authorization_code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
        )

    async def _issue_tokens(self, context: AuthorizationCodeContext) -> TokenResponse:
        authorization_code = context.authorization_code
        try:
            self._check_authorization_code(context)
        finally:
            # Codes are single-use, whether or not the exchange succeeds.
            consumed = await self._authorization_code_service.revoke(authorization_code)
        if not consumed:
            logger.warning("Authorization Code of client %s redeemed twice", context.client.id)
            raise InvalidGrant("Revoked Authorization Code.")

        scopes = list(authorization_code.consent.scopes)
        user = authorization_code.user

        access_token = await self._access_token_service.create(scopes, context.client, user)
        refresh_token = await self._create_refresh_token(scopes, context.client, user)
        response = self._token_response(access_token, refresh_token)

        if self._id_token_handler is not None and "openid" in scopes:
            id_token = await self._id_token_handler.generate(
                authorization_code.consent,
                session=authorization_code.session,
                parameters=authorization_code.parameters,
                access_token=access_token,
            )
            response = response.model_copy(update={"id_token": id_token})
        return response

    def _check_authorization_code(self, context: AuthorizationCodeContext) -> None:
        authorization_code = context.authorization_code
        now = utc_now()

        if not constant_time_compare(authorization_code.client.id, context.client.id):
            raise InvalidGrant("Mismatching Client Identifier.")
        if authorization_code.is_not_yet_valid(now):
            raise InvalidGrant("Authorization Code not yet valid.")
        if authorization_code.is_expired(now):
            raise InvalidGrant("Expired Authorization Code.")
        if authorization_code.is_revoked:
            raise InvalidGrant("Revoked Authorization Code.")

        bound_redirect_uri = authorization_code.redirect_uri
        if bound_redirect_uri is None or not constant_time_compare(
            bound_redirect_uri, context.redirect_uri
        ):
            raise InvalidGrant("Mismatching Redirect URI.")

        self._check_pkce(authorization_code, context.code_verifier)

    def _check_pkce(self, authorization_code: AuthorizationCode, code_verifier: str | None) -> None:
        challenge = authorization_code.code_challenge
        if challenge is None:
            if code_verifier is not None:
                raise InvalidGrant("No PKCE Code Challenge was recorded for this Authorization Code.")
            return

        if code_verifier is None:
            raise InvalidGrant("Missing PKCE Code Verifier.")

        method_name = authorization_code.code_challenge_method
        method = self._pkce_methods.get(method_name)
        if method is None:
            raise InvalidGrant(f'Unsupported PKCE Method "{method_name}".')

        if not method.verify(challenge, code_verifier):
            raise InvalidGrant("Invalid PKCE Code Challenge.")
