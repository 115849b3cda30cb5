# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OpenID Connect ID Tokens (OIDC Core §2)."""

import base64
import hashlib
from datetime import timedelta
from typing import Any

from beartype import beartype

from .core.config import Settings
from .core.logging_utils import get_logger
from .exceptions import ServerError
from .models import AccessToken, Consent, Session, utc_now
from .services.interfaces import UserinfoService
from .signing import ServerSigningKeys

logger = get_logger(__name__)


@beartype
def left_hash(value: str, algorithm: str) -> str:
    """Left half of the ``algorithm`` hash of ``value``, base64url without padding.

    Used for ``at_hash`` (OIDC Core §3.1.3.6).
    """
    digest = hashlib.new(f"sha{algorithm[2:]}", value.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest[: len(digest) // 2]).rstrip(b"=").decode("ascii")


class IdTokenHandler:
    """Builds and signs ID Tokens for the consents of End-Users."""

    def __init__(
        self,
        settings: Settings,
        signing_keys: ServerSigningKeys,
        user_service: UserinfoService,
    ) -> None:
        """Initialize handler."""
        self._settings = settings
        self._signing_keys = signing_keys
        self._user_service = user_service

    @beartype
    async def generate(
        self,
        consent: Consent,
        *,
        session: Session | None = None,
        parameters: dict[str, str] | None = None,
        access_token: AccessToken | None = None,
    ) -> str:
        """Issue an ID Token describing ``consent.user`` to ``consent.client``.

        ``parameters`` are the authorization request parameters, which may
        carry ``nonce`` and ``max_age``. ``auth_time`` is included whenever
        ``max_age`` was requested or the client asks for it.

        Raises:
            ServerError: if the client asked for an encrypted ID Token or no
                key can sign with its registered algorithm.
        """
        client = consent.client
        if client.id_token_encrypted_response_key_wrap is not None:
            raise ServerError("Encrypted ID Tokens are not supported.")

        algorithm = client.id_token_signed_response_algorithm
        parameters = parameters or {}
        now = utc_now()
        issued_at = int(now.timestamp())

        claims: dict[str, Any] = {
            "iss": self._settings.issuer,
            "sub": consent.user.id,
            "aud": [client.id],
            "exp": int((now + timedelta(seconds=self._settings.id_token_lifetime)).timestamp()),
            "iat": issued_at,
            "azp": client.id,
        }

        if "nonce" in parameters:
            claims["nonce"] = parameters["nonce"]

        if session is not None:
            claims["sid"] = session.id
            if (
                "max_age" in parameters
                or client.require_auth_time
                or client.default_max_age is not None
            ):
                claims["auth_time"] = int(session.created_at.timestamp())

        if access_token is not None:
            claims["at_hash"] = left_hash(access_token.handle, algorithm)

        userinfo = await self._user_service.get_userinfo(consent.user, list(consent.scopes))
        # Protocol claims always win over End-User claims.
        claims = {**userinfo, **claims}

        logger.debug("Issuing ID Token for client %s", client.id)
        return self._signing_keys.sign(claims, algorithm, client)
