# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Token endpoint (RFC 6749 §3.2)."""

from collections.abc import Mapping
from typing import Any

from ..core.logging_utils import get_logger
from ..exceptions import InvalidRequest, UnsupportedGrantType
from ..grant_types import GrantType
from ..http import HttpRequest, HttpResponse
from .base import Endpoint

logger = get_logger(__name__)


class TokenEndpoint(Endpoint):
    """Dispatches token requests to the grant named by ``grant_type``."""

    name = "token"
    path = "/oauth/token"
    http_methods = ("POST",)

    def __init__(self, grant_types: Mapping[str, GrantType[Any]]) -> None:
        """Initialize token endpoint with the enabled grants."""
        self._grant_types = dict(grant_types)

    async def _handle(self, request: HttpRequest) -> HttpResponse:
        grant_type = request.form().get("grant_type")
        if not isinstance(grant_type, str):
            raise InvalidRequest('Invalid parameter "grant_type".')

        grant = self._grant_types.get(grant_type)
        if grant is None:
            logger.warning("Unsupported grant_type requested: %s", grant_type)
            raise UnsupportedGrantType(f'Unsupported grant_type "{grant_type}".')

        context = (await grant.validate(request)).unwrap()
        token_response = (await grant.issue_tokens(context)).unwrap()
        return HttpResponse.from_json(token_response.to_dict())
