# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client authentication with no secret, or with a shared secret."""

import base64
import binascii
import re
from urllib.parse import unquote_plus

from beartype import beartype

from ..exceptions import InvalidClient
from ..http import HttpRequest
from ..models import Client
from .base import ClientAuthenticationMethod, SecretClientAuthenticationMethod

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=]+$")


class NoneClientAuthentication(ClientAuthenticationMethod):
    """Public clients identify themselves with ``client_id`` only."""

    name = "none"

    @beartype
    def is_requested(self, request: HttpRequest) -> bool:
        """A body ``client_id`` and no other credential."""
        form = request.form()
        return (
            isinstance(form.get("client_id"), str)
            and "client_secret" not in form
            and "client_assertion" not in form
            and request.header("authorization") is None
        )

    @beartype
    async def authenticate(self, request: HttpRequest) -> Client:
        """Accept only public clients that registered method ``none``."""
        client_id = request.form()["client_id"]
        client = await self._client_service.find_one(client_id)
        if client is None:
            raise InvalidClient("Invalid Credentials.")

        if client.secret is not None or client.authentication_method != self.name:
            raise self._not_allowed()

        return client


class ClientSecretBasicAuthentication(SecretClientAuthenticationMethod):
    """HTTP Basic credentials in the Authorization header (RFC 6749 §2.3.1)."""

    name = "client_secret_basic"
    challenge_headers = {"WWW-Authenticate": "Basic"}

    @beartype
    def is_requested(self, request: HttpRequest) -> bool:
        """An Authorization header using the Basic scheme."""
        authorization = request.header("authorization")
        return authorization is not None and authorization.startswith("Basic")

    @beartype
    async def authenticate(self, request: HttpRequest) -> Client:
        """Decode the Basic credentials and compare the secret."""
        headers = dict(self.challenge_headers)
        authorization = request.header("authorization") or ""
        parts = authorization.split(" ", 1)

        if len(parts) != 2 or not parts[1]:
            raise InvalidClient("Missing Token.", headers=headers)

        token = parts[1].strip()
        if not _BASE64_PATTERN.match(token):
            raise InvalidClient("Token is not a Base64 string.", headers=headers)

        try:
            credentials = base64.b64decode(token).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise InvalidClient("Token is not a Base64 string.", headers=headers) from None

        if ":" not in credentials:
            raise InvalidClient("Missing Semicolon Separator.", headers=headers)

        client_id, client_secret = (unquote_plus(part) for part in credentials.split(":", 1))
        if not client_id:
            raise InvalidClient("Missing Client Identifier.", headers=headers)
        if not client_secret:
            raise InvalidClient("Missing Client Secret.", headers=headers)

        return await self._check_secret(client_id, client_secret)


class ClientSecretPostAuthentication(SecretClientAuthenticationMethod):
    """Client credentials in the request body."""

    name = "client_secret_post"

    @beartype
    def is_requested(self, request: HttpRequest) -> bool:
        """Both ``client_id`` and ``client_secret`` are body strings."""
        form = request.form()
        return isinstance(form.get("client_id"), str) and isinstance(
            form.get("client_secret"), str
        )

    @beartype
    async def authenticate(self, request: HttpRequest) -> Client:
        """Compare the body secret."""
        form = request.form()
        client_id: str = form["client_id"]
        client_secret: str = form["client_secret"]

        if not client_id:
            raise InvalidClient("Missing Client Identifier.")
        if not client_secret:
            raise InvalidClient("Missing Client Secret.")

        return await self._check_secret(client_id, client_secret)
