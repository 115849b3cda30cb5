# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Device authorization endpoint (RFC 8628 §3.1)."""

from urllib.parse import urlencode

from ..client_authentication import ClientAuthenticationHandler
from ..core.config import DEVICE_CODE_GRANT, Settings
from ..core.logging_utils import get_logger
from ..exceptions import UnauthorizedClient
from ..grant_types.base import optional_string
from ..http import HttpRequest, HttpResponse
from ..models import utc_now
from ..scopes import ScopeHandler
from ..services.interfaces import DeviceCodeService
from .base import Endpoint

logger = get_logger(__name__)


class DeviceAuthorizationEndpoint(Endpoint):
    """Starts a device authorization by issuing a device code and a user code."""

    name = "device_authorization"
    path = "/oauth/device-authorization"
    http_methods = ("POST",)

    def __init__(
        self,
        settings: Settings,
        client_authentication: ClientAuthenticationHandler,
        device_code_service: DeviceCodeService,
        scope_handler: ScopeHandler,
    ) -> None:
        """Initialize endpoint."""
        self._settings = settings
        self._client_authentication = client_authentication
        self._device_code_service = device_code_service
        self._scope_handler = scope_handler

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        client = (await self._client_authentication.authenticate(request)).unwrap()

        if DEVICE_CODE_GRANT not in client.grant_types:
            raise UnauthorizedClient(
                f'This Client is not allowed to use the grant "{DEVICE_CODE_GRANT}".'
            )

        scope = optional_string(request.form(), "scope")
        self._scope_handler.check_requested_scope(scope)
        scopes = self._scope_handler.get_allowed_scopes(client, scope)

        device_code = await self._device_code_service.create(client, scopes)
        logger.info("Issued device code to client %s", client.id)

        verification_uri = self._settings.device_verification_page
        expires_in = int((device_code.expires_at - utc_now()).total_seconds())
        return HttpResponse.from_json(
            {
                "device_code": device_code.code,
                "user_code": device_code.user_code,
                "verification_uri": verification_uri,
                "verification_uri_complete": (
                    f"{verification_uri}?{urlencode({'user_code': device_code.user_code})}"
                ),
                "expires_in": max(expires_in, 0),
                "interval": self._settings.device_polling_interval,
            }
        )
