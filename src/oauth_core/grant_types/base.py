# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Common machinery of the grant type processors.

Every grant runs in two steps:

1. ``validate(request)`` authenticates the client, checks that the client
   may use the grant and parses the grant parameters into an immutable
   context.
2. ``issue_tokens(context)`` applies the grant's state checks and mints the
   tokens through the storage services.

Both steps return a :class:`~oauth_core.core.result_types.Result`; protocol
failures never escape as exceptions.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from attrs import frozen
from beartype import beartype
from pydantic import Field

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..exceptions import InvalidRequest, OAuth2Error, UnauthorizedClient
from ..http import HttpRequest
from ..models import AccessToken, BaseModelConfig, Client, RefreshToken, User, utc_now
from ..services.interfaces import AccessTokenService, RefreshTokenService

logger = get_logger(__name__)


@beartype
class TokenResponse(BaseModelConfig):
    """Successful token endpoint response (RFC 6749 §5.1)."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., ge=0)
    scope: str | None = None
    refresh_token: str | None = None
    id_token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize without absent members."""
        return self.model_dump(exclude_none=True)


@frozen
class TokenContext:
    """Parameters and authenticated client shared by every grant."""

    parameters: dict[str, Any]
    client: Client
    grant_type: str


ContextT = TypeVar("ContextT", bound=TokenContext)


class GrantType(ABC, Generic[ContextT]):
    """Base class of the grant type processors."""

    name: ClassVar[str]

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        refresh_token_service: RefreshTokenService | None = None,
    ) -> None:
        """Initialize grant type."""
        self._settings = settings
        self._client_authentication = client_authentication
        self._access_token_service = access_token_service
        self._refresh_token_service = refresh_token_service

    @beartype
    async def validate(self, request: HttpRequest) -> Result[ContextT, OAuth2Error]:
        """Authenticate the client and parse the grant parameters."""
        try:
            client = (await self._client_authentication.authenticate(request)).unwrap()
            self._check_client_grant(client)
            context = await self._validate(request.form(), client)
        except OAuth2Error as e:
            logger.warning("%s request rejected: %s", self.name, e.error_description)
            return Err(e)
        return Ok(context)

    @beartype
    async def issue_tokens(self, context: ContextT) -> Result[TokenResponse, OAuth2Error]:
        """Apply the grant state checks and mint the tokens."""
        try:
            response = await self._issue_tokens(context)
        except OAuth2Error as e:
            logger.warning(
                "%s grant failed for client %s: %s",
                self.name,
                context.client.id,
                e.error_description,
            )
            return Err(e)

        logger.info("Issued tokens to client %s with %s grant", context.client.id, self.name)
        return Ok(response)

    @abstractmethod
    async def _validate(self, parameters: dict[str, Any], client: Client) -> ContextT:
        """Grant-specific parameter validation."""

    @abstractmethod
    async def _issue_tokens(self, context: ContextT) -> TokenResponse:
        """Grant-specific state checks and issuance."""

    def _check_client_grant(self, client: Client) -> None:
        if self.name not in client.grant_types:
            raise UnauthorizedClient(
                f'This Client is not allowed to request the grant_type "{self.name}".'
            )

    def _allows_refresh_token(self, client: Client) -> bool:
        return (
            self._refresh_token_service is not None
            and "refresh_token" in self._settings.grant_types
            and "refresh_token" in client.grant_types
        )

    async def _create_refresh_token(
        self, scopes: list[str], client: Client, user: User | None
    ) -> RefreshToken | None:
        if self._refresh_token_service is None or not self._allows_refresh_token(client):
            return None
        return await self._refresh_token_service.create(scopes, client, user)

    @staticmethod
    def _token_response(
        access_token: AccessToken, refresh_token: RefreshToken | None = None
    ) -> TokenResponse:
        remaining = (access_token.expires_at - utc_now()).total_seconds()
        return TokenResponse(
            access_token=access_token.handle,
            expires_in=max(0, math.ceil(remaining)),
            scope=" ".join(access_token.scopes) or None,
            refresh_token=refresh_token.handle if refresh_token is not None else None,
        )


@beartype
def required_string(parameters: dict[str, Any], name: str) -> str:
    """Fetch a mandatory string parameter.

    Raises:
        InvalidRequest: if the parameter is absent or not a string.
    """
    value = parameters.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidRequest(f'Invalid parameter "{name}".')
    return value


@beartype
def optional_string(parameters: dict[str, Any], name: str) -> str | None:
    """Fetch an optional string parameter.

    Raises:
        InvalidRequest: if the parameter is present but not a string.
    """
    value = parameters.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f'Invalid parameter "{name}".')
    return value
