# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Endpoint base class: the single place where failures become responses."""

from abc import ABC, abstractmethod
from typing import ClassVar

from beartype import beartype

from ..core.logging_utils import get_logger
from ..exceptions import InvalidRequest, OAuth2Error, ServerError
from ..http import DEFAULT_HEADERS, HttpRequest, HttpResponse

logger = get_logger(__name__)


@beartype
def error_response(error: OAuth2Error) -> HttpResponse:
    """Serialize an OAuth2 error (RFC 6749 §5.2)."""
    return HttpResponse.from_json(error.to_dict(), status_code=error.status_code, headers=error.headers)


class Endpoint(ABC):
    """An HTTP endpoint of the Authorization Server.

    Every response, successful or not, carries ``Cache-Control: no-store``
    and ``Pragma: no-cache``.
    """

    name: ClassVar[str]
    path: ClassVar[str]
    http_methods: ClassVar[tuple[str, ...]]

    @beartype
    async def handle(self, request: HttpRequest) -> HttpResponse:
        """Process a request and never raise."""
        try:
            if request.method not in self.http_methods:
                raise InvalidRequest(
                    f'Unsupported HTTP Method "{request.method}".', status_code=405
                )
            response = await self._handle(request)
        except OAuth2Error as e:
            response = error_response(e)
        except Exception as e:
            logger.exception("Unexpected error at the %s endpoint", self.name)
            server_error = ServerError("An unexpected error occurred.")
            server_error.__cause__ = e
            response = error_response(server_error)

        return response.with_headers(DEFAULT_HEADERS)

    @abstractmethod
    async def _handle(self, request: HttpRequest) -> HttpResponse:
        """Endpoint logic; protocol failures are raised as OAuth2Error."""
