# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""JWT client assertions (RFC 7523 §2.2): client_secret_jwt and private_key_jwt.

Both methods read the same request parameters; they are told apart by the
algorithm family in the assertion header. HMAC algorithms belong to
``client_secret_jwt`` and everything else to ``private_key_jwt``.
"""

from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any, ClassVar, Final

import jwt
from beartype import beartype

from ..assertions import (
    is_hmac_algorithm,
    looks_like_jws,
    read_header,
    resolve_verification_key,
    verify_assertion,
)
from ..core.config import ASYMMETRIC_ALGORITHMS, HMAC_ALGORITHMS, Settings
from ..core.logging_utils import get_logger
from ..exceptions import InvalidClient, OAuth2Error
from ..http import HttpRequest
from ..models import Client
from ..services.interfaces import ClientAssertionService, ClientService
from .base import ClientAuthenticationMethod

logger = get_logger(__name__)

CLIENT_ASSERTION_TYPE: Final = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
REQUIRED_CLAIMS: Final = ["iss", "sub", "aud", "exp", "jti"]


class JwtBearerClientAuthentication(ClientAuthenticationMethod):
    """Shared verification of signed client assertions."""

    algorithms: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        settings: Settings,
        client_service: ClientService,
        assertion_service: ClientAssertionService | None = None,
    ) -> None:
        """Initialize assertion-based authentication.

        Args:
            settings: Server settings
            client_service: Client lookup
            assertion_service: Replay store for ``jti`` values; replay
                protection is skipped when it is not provided
        """
        super().__init__(settings, client_service)
        self._assertion_service = assertion_service

    def _assertion_algorithm(self, request: HttpRequest) -> str | None:
        form = request.form()
        if form.get("client_assertion_type") != CLIENT_ASSERTION_TYPE:
            return None
        assertion = form.get("client_assertion")
        if not looks_like_jws(assertion):
            return None
        try:
            alg = read_header(assertion).get("alg")
        except jwt.InvalidTokenError:
            return ""
        return alg if isinstance(alg, str) else ""

    @abstractmethod
    def _claims_algorithm(self, alg: str) -> bool:
        """Check if an assertion signed with ``alg`` is meant for this method."""

    @beartype
    def is_requested(self, request: HttpRequest) -> bool:
        """A JWT bearer client assertion signed with this method's algorithm family."""
        alg = self._assertion_algorithm(request)
        return alg is not None and self._claims_algorithm(alg)

    @beartype
    async def authenticate(self, request: HttpRequest) -> Client:
        """Verify the assertion and return the client it identifies."""
        form = request.form()
        assertion: str = form["client_assertion"]

        try:
            header = read_header(assertion)
            alg = self._check_algorithm(header.get("alg"))
            claims = jwt.decode(assertion, options={"verify_signature": False})

            subject = claims.get("sub")
            if not isinstance(subject, str) or not subject:
                raise InvalidClient("Invalid JSON Web Token Client Assertion.")
            if claims.get("iss") != subject:
                raise InvalidClient('The values of "iss" and "sub" are different.')

            client_id = form.get("client_id")
            if isinstance(client_id, str) and client_id != subject:
                raise InvalidClient("Mismatching Client Identifier.")

            client = await self._client_service.find_one(subject)
            if client is None:
                raise InvalidClient("Invalid Client.")

            if (
                client.authentication_method != self.name
                or client.authentication_signing_algorithm != alg
            ):
                raise self._not_allowed()

            key = await resolve_verification_key(client, header)
            verified = verify_assertion(
                assertion,
                key,
                alg,
                audience=self._audience(request),
                issuer=client.id,
                required=REQUIRED_CLAIMS,
            )
            await self._check_replay(client, verified)
            return client

        except OAuth2Error:
            raise
        except Exception as e:
            logger.warning("Rejected client assertion: %s", e)
            raise InvalidClient("Invalid JSON Web Token Client Assertion.") from e

    def _check_algorithm(self, alg: Any) -> str:
        if not isinstance(alg, str):
            raise InvalidClient("Invalid JSON Web Token Client Assertion.")
        if alg.lower() == "none":
            raise InvalidClient(
                'The Authorization Server disallows using the JSON Web Signature Algorithm "none".'
            )
        if alg not in self._settings.client_authentication_signature_algorithms:
            raise InvalidClient(f'Unsupported JSON Web Signature Algorithm "{alg}".')
        if alg not in self.algorithms:
            raise InvalidClient(
                f'Unsupported JSON Web Signature Algorithm "{alg}" '
                f'for Authentication Method "{self.name}".'
            )
        return alg

    def _audience(self, request: HttpRequest) -> str:
        return f"{self._settings.issuer.rstrip('/')}{request.path}"

    async def _check_replay(self, client: Client, claims: dict[str, Any]) -> None:
        if self._assertion_service is None:
            return
        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        if not await self._assertion_service.register_jti(
            client.id, str(claims["jti"]), expires_at
        ):
            logger.warning("Replayed client assertion jti for client %s", client.id)
            raise InvalidClient("The Client Assertion has already been used.")


class ClientSecretJwtAuthentication(JwtBearerClientAuthentication):
    """Assertion signed with the client secret using an HMAC algorithm."""

    name = "client_secret_jwt"
    algorithms = HMAC_ALGORITHMS

    def _claims_algorithm(self, alg: str) -> bool:
        return is_hmac_algorithm(alg)


class PrivateKeyJwtAuthentication(JwtBearerClientAuthentication):
    """Assertion signed with a private key whose public half the client registered."""

    name = "private_key_jwt"
    algorithms = ASYMMETRIC_ALGORITHMS

    def _claims_algorithm(self, alg: str) -> bool:
        return not is_hmac_algorithm(alg)
