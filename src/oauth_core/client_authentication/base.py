# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base class for client authentication methods."""

from abc import ABC, abstractmethod
from typing import ClassVar

from beartype import beartype

from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.security import constant_time_compare
from ..exceptions import InvalidClient
from ..http import HttpRequest
from ..models import Client
from ..services.interfaces import ClientService

logger = get_logger(__name__)


class ClientAuthenticationMethod(ABC):
    """One way a client can prove its identity at the token endpoint.

    ``is_requested`` only inspects the shape of the request; ``authenticate``
    performs the actual check and raises :class:`InvalidClient` on failure.
    """

    name: ClassVar[str]

    def __init__(self, settings: Settings, client_service: ClientService) -> None:
        """Initialize authentication method."""
        self._settings = settings
        self._client_service = client_service

    @abstractmethod
    def is_requested(self, request: HttpRequest) -> bool:
        """Check if the request carries credentials for this method."""

    @abstractmethod
    async def authenticate(self, request: HttpRequest) -> Client:
        """Authenticate the client or raise InvalidClient."""

    def _not_allowed(self, headers: dict[str, str] | None = None) -> InvalidClient:
        return InvalidClient(
            f'This Client is not allowed to use the Authentication Method "{self.name}".',
            headers=headers,
        )


class SecretClientAuthenticationMethod(ClientAuthenticationMethod):
    """Shared logic for methods that present the client secret itself."""

    challenge_headers: ClassVar[dict[str, str]] = {}

    @beartype
    async def _check_secret(self, client_id: str, client_secret: str) -> Client:
        headers = dict(self.challenge_headers)
        client = await self._client_service.find_one(client_id)
        if client is None:
            logger.warning("Unknown client %s", client_id)
            raise InvalidClient("Invalid Credentials.", headers=headers)

        if client.secret is None:
            raise self._not_allowed(headers)

        if not constant_time_compare(client.secret, client_secret):
            logger.warning("Client %s presented a wrong secret", client.id)
            raise InvalidClient("Invalid Credentials.", headers=headers)

        if client.is_secret_expired():
            logger.warning("Client %s presented an expired secret", client.id)
            raise InvalidClient("Invalid Credentials.", headers=headers)

        if client.authentication_method != self.name:
            raise self._not_allowed(headers)

        return client
