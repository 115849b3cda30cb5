# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Request validators of the Dynamic Client Registration endpoint.

POST (RFC 7591) is authorized by an Initial Access Token that is not bound to
any client. GET, PUT and DELETE (RFC 7592) are authorized by the Registration
Access Token issued to the client being managed.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from beartype import beartype

from ..bearer import BearerTokenAuthorization
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.security import constant_time_compare
from ..exceptions import (
    InsufficientScope,
    InvalidClientMetadata,
    InvalidRequest,
    InvalidToken,
    OAuth2Error,
)
from ..http import HttpRequest
from ..models import AccessToken, Client
from ..services.interfaces import AccessTokenService, ClientService
from .contexts import (
    DeleteRegistrationContext,
    GetRegistrationContext,
    PostRegistrationContext,
    PutRegistrationContext,
)
from .metadata import ClientMetadataValidator

logger = get_logger(__name__)

ContextT = TypeVar("ContextT")


class RegistrationRequestValidator(ABC, Generic[ContextT]):
    """Base class of the per-method registration validators."""

    http_method: ClassVar[str]
    expected_scopes: ClassVar[list[str]]

    def __init__(
        self,
        bearer_authorization: BearerTokenAuthorization,
        access_token_service: AccessTokenService,
        client_service: ClientService,
    ) -> None:
        """Initialize registration validator."""
        self._bearer_authorization = bearer_authorization
        self._access_token_service = access_token_service
        self._client_service = client_service

    @beartype
    async def validate(self, request: HttpRequest) -> Result[ContextT, OAuth2Error]:
        """Authorize the request and build its registration context."""
        try:
            context = await self._validate(request)
        except OAuth2Error as e:
            logger.warning(
                "%s registration request rejected: %s", self.http_method, e.error_description
            )
            return Err(e)

        logger.debug("%s registration request validated", self.http_method)
        return Ok(context)

    @abstractmethod
    async def _validate(self, request: HttpRequest) -> ContextT:
        """Method-specific validation."""

    def _check_scopes(self, access_token: AccessToken) -> None:
        if not any(scope in self.expected_scopes for scope in access_token.scopes):
            raise InsufficientScope("Invalid Credentials.")

    async def _authorize_client_token(self, request: HttpRequest, client_id: str) -> AccessToken:
        """Authorize a Registration Access Token bound to ``client_id``.

        A token presented for another client is revoked.
        """
        access_token = (await self._bearer_authorization.authorize(request)).unwrap()

        if access_token.client is None:
            raise InvalidToken("Invalid Credentials.")

        if not constant_time_compare(access_token.client.id, client_id):
            logger.warning(
                "Registration Access Token of client %s presented for client %s, revoking",
                access_token.client.id,
                client_id,
            )
            await self._access_token_service.revoke(access_token)
            raise InsufficientScope("Invalid Credentials.")

        self._check_scopes(access_token)
        return access_token

    async def _current_client(self, client_id: str) -> Client:
        """Fetch the stored client, since a token only holds a snapshot of it."""
        client = await self._client_service.find_one(client_id)
        if client is None:
            raise InvalidToken("Invalid Credentials.")
        return client

    @staticmethod
    def _json_body(request: HttpRequest) -> dict[str, Any]:
        if not isinstance(request.body, dict):
            raise InvalidRequest("Invalid Http Request Body.")
        return request.body


class PostRegistrationRequestValidator(RegistrationRequestValidator[PostRegistrationContext]):
    """Validates client creation requests."""

    http_method = "POST"
    expected_scopes = ["client:manage", "client:create"]

    def __init__(
        self,
        bearer_authorization: BearerTokenAuthorization,
        access_token_service: AccessTokenService,
        client_service: ClientService,
        metadata_validator: ClientMetadataValidator,
    ) -> None:
        """Initialize POST validator."""
        super().__init__(bearer_authorization, access_token_service, client_service)
        self._metadata_validator = metadata_validator

    async def _validate(self, request: HttpRequest) -> PostRegistrationContext:
        parameters = self._json_body(request)

        access_token = (await self._bearer_authorization.authorize(request)).unwrap()
        if access_token.client is not None:
            # A Registration Access Token cannot register new clients.
            raise InvalidToken("Invalid Credentials.")
        self._check_scopes(access_token)

        metadata = self._metadata_validator.validate(parameters)
        return PostRegistrationContext(
            parameters=parameters, access_token=access_token, metadata=metadata
        )


class _QueryClientValidator(RegistrationRequestValidator[ContextT]):
    """Shared flow of GET and DELETE: ``client_id`` in the query."""

    @staticmethod
    def _query_client_id(request: HttpRequest) -> str:
        client_id = request.query.get("client_id")
        if not isinstance(client_id, str) or not client_id:
            raise InvalidRequest('Invalid parameter "client_id".')
        return client_id


class GetRegistrationRequestValidator(_QueryClientValidator[GetRegistrationContext]):
    """Validates client read requests."""

    http_method = "GET"
    expected_scopes = ["client:manage", "client:read"]

    async def _validate(self, request: HttpRequest) -> GetRegistrationContext:
        client_id = self._query_client_id(request)
        access_token = await self._authorize_client_token(request, client_id)
        return GetRegistrationContext(
            parameters=dict(request.query),
            access_token=access_token,
            client=await self._current_client(client_id),
        )


class DeleteRegistrationRequestValidator(_QueryClientValidator[DeleteRegistrationContext]):
    """Validates client deletion requests."""

    http_method = "DELETE"
    expected_scopes = ["client:manage", "client:delete"]

    async def _validate(self, request: HttpRequest) -> DeleteRegistrationContext:
        client_id = self._query_client_id(request)
        access_token = await self._authorize_client_token(request, client_id)
        return DeleteRegistrationContext(
            parameters=dict(request.query),
            access_token=access_token,
            client=await self._current_client(client_id),
        )


class PutRegistrationRequestValidator(RegistrationRequestValidator[PutRegistrationContext]):
    """Validates full client update requests."""

    http_method = "PUT"
    expected_scopes = ["client:manage", "client:update"]

    def __init__(
        self,
        bearer_authorization: BearerTokenAuthorization,
        access_token_service: AccessTokenService,
        client_service: ClientService,
        metadata_validator: ClientMetadataValidator,
    ) -> None:
        """Initialize PUT validator."""
        super().__init__(bearer_authorization, access_token_service, client_service)
        self._metadata_validator = metadata_validator

    async def _validate(self, request: HttpRequest) -> PutRegistrationContext:
        parameters = self._json_body(request)

        query_client_id = request.query.get("client_id")
        if not isinstance(query_client_id, str) or not query_client_id:
            raise InvalidClientMetadata('Invalid parameter "client_id".')

        body_client_id = parameters.get("client_id")
        if not isinstance(body_client_id, str):
            raise InvalidClientMetadata('Invalid parameter "client_id".')

        if not constant_time_compare(query_client_id, body_client_id):
            raise InvalidClientMetadata("Mismatching Client Identifiers.")

        client_secret = parameters.get("client_secret")
        if client_secret is not None and not isinstance(client_secret, str):
            raise InvalidClientMetadata('Invalid parameter "client_secret".')

        access_token = await self._authorize_client_token(request, query_client_id)
        client = await self._current_client(query_client_id)

        if (
            client.secret is not None
            and client_secret is not None
            and not constant_time_compare(client.secret, client_secret)
        ):
            raise InvalidClientMetadata("Mismatching Client Secret.")

        metadata = self._metadata_validator.validate(parameters)
        return PutRegistrationContext(
            parameters=parameters, access_token=access_token, client=client, metadata=metadata
        )
