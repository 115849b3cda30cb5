# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Scope validation against server capabilities and client registrations."""

from beartype import beartype

from .core.config import Settings
from .core.logging_utils import get_logger
from .exceptions import InvalidScope
from .models import Client

logger = get_logger(__name__)


@beartype
def split_scope(scope: str) -> list[str]:
    """Split a space-delimited scope string, ignoring repeated spaces."""
    return [item for item in scope.split(" ") if item]


class ScopeHandler:
    """Checks requested scopes."""

    def __init__(self, settings: Settings) -> None:
        """Initialize scope handler."""
        self._settings = settings

    @beartype
    def check_requested_scope(self, scope: str | None) -> None:
        """Ensure every requested scope is supported by the server.

        Raises:
            InvalidScope: naming the first unsupported scope.
        """
        if scope is None:
            return

        for requested in split_scope(scope):
            if requested not in self._settings.scopes:
                logger.warning("Unsupported scope requested: %s", requested)
                raise InvalidScope(f'Unsupported scope "{requested}".')

    @beartype
    def get_allowed_scopes(self, client: Client, scope: str | None) -> list[str]:
        """Resolve the scopes to grant ``client``.

        Without a requested scope the client's registered scopes are granted.

        Raises:
            InvalidScope: if a requested scope is not registered for the client.
        """
        if scope is None:
            return list(client.scopes)

        allowed: list[str] = []
        for requested in split_scope(scope):
            if requested not in client.scopes:
                logger.warning(
                    "Client %s requested unregistered scope %s", client.id, requested
                )
                raise InvalidScope(
                    f'The Client is not allowed to request the scope "{requested}".'
                )
            allowed.append(requested)
        return allowed
