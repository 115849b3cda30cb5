# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Dynamic Client Registration endpoint (RFC 7591 §3, RFC 7592 §2)."""

from typing import Any
from urllib.parse import urlencode

from beartype import beartype

from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..exceptions import InvalidToken
from ..http import HttpRequest, HttpResponse
from ..models import Client, to_timestamp
from ..registration.validators import (
    DeleteRegistrationRequestValidator,
    GetRegistrationRequestValidator,
    PostRegistrationRequestValidator,
    PutRegistrationRequestValidator,
)
from ..services.interfaces import AccessTokenService, ClientService, require_methods
from .base import Endpoint

logger = get_logger(__name__)


@beartype
def client_information(
    client: Client, settings: Settings, registration_access_token: str | None
) -> dict[str, Any]:
    """Client Information Response members (RFC 7591 §3.2.1)."""
    if client.secret is None:
        secret_expires_at = None
    elif client.secret_expires_at is None:
        secret_expires_at = 0
    else:
        secret_expires_at = to_timestamp(client.secret_expires_at)

    return {
        "client_id": client.id,
        "client_secret": client.secret,
        "client_id_issued_at": to_timestamp(client.created_at),
        "client_secret_expires_at": secret_expires_at,
        "registration_access_token": registration_access_token,
        "registration_client_uri": (
            f"{settings.registration_endpoint}?{urlencode({'client_id': client.id})}"
        ),
        "redirect_uris": client.redirect_uris,
        "response_types": client.response_types,
        "grant_types": client.grant_types,
        "application_type": client.application_type.value,
        "client_name": client.name,
        "scope": " ".join(client.scopes),
        "contacts": client.contacts,
        "logo_uri": client.logo_uri,
        "client_uri": client.client_uri,
        "policy_uri": client.policy_uri,
        "tos_uri": client.tos_uri,
        "jwks_uri": client.jwks_uri,
        "jwks": client.jwks,
        "subject_type": client.subject_type.value,
        "sector_identifier_uri": client.sector_identifier_uri,
        "id_token_signed_response_alg": client.id_token_signed_response_algorithm,
        "id_token_encrypted_response_alg": client.id_token_encrypted_response_key_wrap,
        "id_token_encrypted_response_enc": client.id_token_encrypted_response_content_encryption,
        "userinfo_signed_response_alg": client.userinfo_signed_response_algorithm,
        "userinfo_encrypted_response_alg": client.userinfo_encrypted_response_key_wrap,
        "userinfo_encrypted_response_enc": client.userinfo_encrypted_response_content_encryption,
        "authorization_signed_response_alg": client.authorization_signed_response_algorithm,
        "authorization_encrypted_response_alg": client.authorization_encrypted_response_key_wrap,
        "authorization_encrypted_response_enc": (
            client.authorization_encrypted_response_content_encryption
        ),
        "token_endpoint_auth_method": client.authentication_method,
        "token_endpoint_auth_signing_alg": client.authentication_signing_algorithm,
        "default_max_age": client.default_max_age,
        "require_auth_time": client.require_auth_time,
        "default_acr_values": client.default_acr_values,
        "initiate_login_uri": client.initiate_login_uri,
        "post_logout_redirect_uris": client.post_logout_redirect_uris,
        "backchannel_logout_uri": client.backchannel_logout_uri,
        "backchannel_logout_session_required": (
            client.backchannel_logout_session_required if client.backchannel_logout_uri else None
        ),
        "software_id": client.software_id,
        "software_version": client.software_version,
    }


class RegistrationEndpoint(Endpoint):
    """Creates, reads, updates and deletes clients.

    POST consumes the Initial Access Token and answers with a new
    Registration Access Token. GET and PUT echo the Registration Access Token
    used. DELETE revokes it.
    """

    name = "registration"
    path = "/oauth/register"
    http_methods = ("POST", "GET", "PUT", "DELETE")

    def __init__(
        self,
        settings: Settings,
        client_service: ClientService,
        access_token_service: AccessTokenService,
        post_validator: PostRegistrationRequestValidator,
        get_validator: GetRegistrationRequestValidator,
        put_validator: PutRegistrationRequestValidator,
        delete_validator: DeleteRegistrationRequestValidator,
    ) -> None:
        """Initialize registration endpoint.

        Raises:
            ConfigurationError: if a service lacks a method registration needs.
        """
        require_methods(client_service, "ClientService", ["create", "update", "remove"])
        require_methods(
            access_token_service, "AccessTokenService", ["create_registration_access_token"]
        )
        self._settings = settings
        self._client_service = client_service
        self._access_token_service = access_token_service
        self._post_validator = post_validator
        self._get_validator = get_validator
        self._put_validator = put_validator
        self._delete_validator = delete_validator

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        if request.method == "POST":
            return await self._register(request)
        if request.method == "GET":
            return await self._read(request)
        if request.method == "PUT":
            return await self._update(request)
        return await self._delete(request)

    async def _register(self, request: HttpRequest) -> HttpResponse:
        context = (await self._post_validator.validate(request)).unwrap()

        # Initial Access Tokens register exactly one client.
        if not await self._access_token_service.revoke(context.access_token):
            raise InvalidToken("Revoked Access Token.")

        client = await self._client_service.create(context)
        registration_access_token = (
            await self._access_token_service.create_registration_access_token(client)
        )

        logger.info("Client %s registered", client.id)
        body = client_information(client, self._settings, registration_access_token.handle)
        return HttpResponse.from_json(body, status_code=201)

    async def _read(self, request: HttpRequest) -> HttpResponse:
        context = (await self._get_validator.validate(request)).unwrap()
        body = client_information(context.client, self._settings, context.access_token.handle)
        return HttpResponse.from_json(body)

    async def _update(self, request: HttpRequest) -> HttpResponse:
        context = (await self._put_validator.validate(request)).unwrap()

        client = await self._client_service.update(context.client, context)

        logger.info("Client %s updated", client.id)
        body = client_information(client, self._settings, context.access_token.handle)
        return HttpResponse.from_json(body)

    async def _delete(self, request: HttpRequest) -> HttpResponse:
        context = (await self._delete_validator.validate(request)).unwrap()

        await self._client_service.remove(context.client)
        await self._access_token_service.revoke(context.access_token)

        logger.info("Client %s deleted", context.client.id)
        return HttpResponse(status_code=204)
