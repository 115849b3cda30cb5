# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Signing of JWTs issued by the Authorization Server itself.

Asymmetric algorithms use the server's private JSON Web Key Set; HMAC
algorithms use the secret of the client the JWT is addressed to.
"""

from typing import Any

import jwt
from beartype import beartype

from .assertions import is_hmac_algorithm
from .core.logging_utils import get_logger
from .exceptions import ConfigurationError, ServerError
from .models import Client

logger = get_logger(__name__)


class ServerSigningKeys:
    """Private keys the Authorization Server signs with."""

    @beartype
    def __init__(self, jwks: dict[str, Any]) -> None:
        """Load a private JSON Web Key Set.

        Raises:
            ConfigurationError: if the key set cannot be loaded.
        """
        try:
            self._keyset = jwt.PyJWKSet.from_dict(jwks)
        except jwt.PyJWKSetError as e:
            raise ConfigurationError(f"Invalid signing keys: {e}") from e

    @property
    def algorithms(self) -> list[str]:
        """Algorithms some loaded key can sign with."""
        return sorted({key.algorithm_name for key in self._keyset.keys})

    def _find_key(self, algorithm: str) -> jwt.PyJWK:
        for key in self._keyset.keys:
            if key.algorithm_name == algorithm and key.public_key_use in (None, "sig"):
                return key
        logger.error("No signing key configured for %s", algorithm)
        raise ServerError(f'No signing key available for "{algorithm}".')

    @beartype
    def sign(self, claims: dict[str, Any], algorithm: str, client: Client) -> str:
        """Sign ``claims`` for ``client`` as a compact JWS.

        Raises:
            ServerError: if no key can produce ``algorithm``.
        """
        if algorithm == "none":
            raise ServerError('Unsigned JWTs ("none") are not issued.')

        if is_hmac_algorithm(algorithm):
            if client.secret is None:
                raise ServerError(f'Client has no secret to sign "{algorithm}" with.')
            return jwt.encode(claims, client.secret, algorithm=algorithm)

        key = self._find_key(algorithm)
        headers = {"kid": key.key_id} if key.key_id else None
        return jwt.encode(claims, key.key, algorithm=algorithm, headers=headers)
