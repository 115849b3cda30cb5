# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client authentication handler.

Selects exactly one authentication method from the credentials in the
request and delegates to it.
"""

from collections.abc import Callable
from typing import Final

from beartype import beartype

from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..exceptions import ConfigurationError, InvalidClient, OAuth2Error
from ..http import HttpRequest
from ..models import Client
from ..services.interfaces import ClientAssertionService, ClientService
from .base import ClientAuthenticationMethod
from .jwt_assertion import ClientSecretJwtAuthentication, PrivateKeyJwtAuthentication
from .secret import (
    ClientSecretBasicAuthentication,
    ClientSecretPostAuthentication,
    NoneClientAuthentication,
)

logger = get_logger(__name__)

MethodFactory = Callable[
    [Settings, ClientService, ClientAssertionService | None], ClientAuthenticationMethod
]

# Inspection order: Basic header, body secret, JWT assertion, bare client_id.
CLIENT_AUTHENTICATION_METHODS: Final[dict[str, MethodFactory]] = {
    "client_secret_basic": lambda s, c, a: ClientSecretBasicAuthentication(s, c),
    "client_secret_post": lambda s, c, a: ClientSecretPostAuthentication(s, c),
    "client_secret_jwt": lambda s, c, a: ClientSecretJwtAuthentication(s, c, a),
    "private_key_jwt": lambda s, c, a: PrivateKeyJwtAuthentication(s, c, a),
    "none": lambda s, c, a: NoneClientAuthentication(s, c),
}


class ClientAuthenticationHandler:
    """Authenticates the client of a token-endpoint style request."""

    def __init__(
        self,
        settings: Settings,
        client_service: ClientService,
        assertion_service: ClientAssertionService | None = None,
    ) -> None:
        """Build the enabled methods from settings.

        Raises:
            ConfigurationError: if settings name an unknown method.
        """
        unknown = [
            name
            for name in settings.client_authentication_methods
            if name not in CLIENT_AUTHENTICATION_METHODS
        ]
        if unknown:
            raise ConfigurationError(f'Unsupported Client Authentication Method "{unknown[0]}".')

        self._methods: tuple[ClientAuthenticationMethod, ...] = tuple(
            factory(settings, client_service, assertion_service)
            for name, factory in CLIENT_AUTHENTICATION_METHODS.items()
            if name in settings.client_authentication_methods
        )

    @property
    def methods(self) -> tuple[ClientAuthenticationMethod, ...]:
        """Enabled methods in inspection order."""
        return self._methods

    @beartype
    async def authenticate(self, request: HttpRequest) -> Result[Client, OAuth2Error]:
        """Authenticate the client of ``request``.

        Returns:
            Ok with the client, or Err with InvalidClient.
        """
        try:
            method = self._select_method(request)
            client = await method.authenticate(request)
        except OAuth2Error as e:
            logger.warning("Client authentication failed: %s", e.error_description)
            return Err(e)

        logger.debug("Client %s authenticated with %s", client.id, method.name)
        return Ok(client)

    def _select_method(self, request: HttpRequest) -> ClientAuthenticationMethod:
        requested = [method for method in self._methods if method.is_requested(request)]
        if not requested:
            raise InvalidClient("No Client Authentication Method detected.")
        if len(requested) > 1:
            raise InvalidClient("Multiple Client Authentication Methods detected.")
        return requested[0]
