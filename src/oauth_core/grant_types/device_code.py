# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Device Authorization grant token polling (RFC 8628 §3.4)."""

from typing import Any

from attrs import frozen

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import DEVICE_CODE_GRANT, Settings
from ..core.security import constant_time_compare
from ..exceptions import (
    AccessDenied,
    AuthorizationPending,
    ExpiredToken,
    InvalidGrant,
    SlowDown,
)
from ..models import Client, DeviceCode, utc_now
from ..services.interfaces import (
    AccessTokenService,
    DeviceCodeService,
    RefreshTokenService,
    require_methods,
)
from .base import GrantType, TokenContext, TokenResponse, required_string


@frozen
class DeviceCodeContext(TokenContext):
    """Validated device code poll."""

    device_code: DeviceCode


class DeviceCodeGrant(GrantType[DeviceCodeContext]):
    """Answers device polls until the End-User decides, then issues tokens once."""

    name = DEVICE_CODE_GRANT

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        device_code_service: DeviceCodeService,
        refresh_token_service: RefreshTokenService | None = None,
    ) -> None:
        """Initialize grant.

        Raises:
            ConfigurationError: if the device code service lacks a required method.
        """
        super().__init__(settings, client_authentication, access_token_service, refresh_token_service)
        require_methods(
            device_code_service, "DeviceCodeService", ["find_one", "revoke", "should_slow_down"]
        )
        self._device_code_service = device_code_service

    async def _validate(self, parameters: dict[str, Any], client: Client) -> DeviceCodeContext:
        code = required_string(parameters, "device_code")

        device_code = await self._device_code_service.find_one(code)
        if device_code is None:
            raise InvalidGrant("Invalid Device Code.")

        return DeviceCodeContext(
            parameters=parameters, client=client, grant_type=self.name, device_code=device_code
        )

    async def _issue_tokens(self, context: DeviceCodeContext) -> TokenResponse:
        device_code = context.device_code

        if not constant_time_compare(device_code.client.id, context.client.id):
            raise InvalidGrant("Mismatching Client Identifier.")
        if device_code.is_expired(utc_now()):
            raise ExpiredToken("Expired Device Code.")
        if device_code.is_revoked:
            raise InvalidGrant("Revoked Device Code.")

        if device_code.is_authorized is None:
            if await self._device_code_service.should_slow_down(device_code):
                raise SlowDown(
                    f"Polling faster than every {self._settings.device_polling_interval} seconds."
                )
            raise AuthorizationPending("Authorization Pending.")

        if device_code.is_authorized is False:
            await self._device_code_service.revoke(device_code)
            raise AccessDenied("Authorization denied by the User.")

        # Only the poll that consumes the code receives tokens.
        if not await self._device_code_service.revoke(device_code):
            raise InvalidGrant("Revoked Device Code.")

        access_token = await self._access_token_service.create(
            device_code.scopes, context.client, device_code.user
        )
        refresh_token = await self._create_refresh_token(
            device_code.scopes, context.client, device_code.user
        )
        return self._token_response(access_token, refresh_token)
