# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""JWT assertion helpers shared by client authentication and the jwt-bearer grant.

The engine only decides which algorithm and which key are acceptable; the
signature itself is checked by PyJWT.
"""

from typing import Any

import httpx
import jwt
from beartype import beartype

from .core.config import HMAC_ALGORITHMS
from .core.logging_utils import get_logger
from .models import Client

logger = get_logger(__name__)

JWKS_FETCH_TIMEOUT = 5.0

# JWK "kty" able to verify each algorithm family
_KEY_TYPES = {"ES": "EC", "PS": "RSA", "RS": "RSA"}


class KeyResolutionError(ValueError):
    """No usable verification key could be found for an assertion."""


@beartype
def looks_like_jws(value: Any) -> bool:
    """Check for a compact JWS: three dot-separated segments."""
    return isinstance(value, str) and value.count(".") == 2


@beartype
def read_header(token: str) -> dict[str, Any]:
    """Read the JOSE header without verifying the signature.

    Raises:
        jwt.InvalidTokenError: if the token cannot be parsed.
    """
    return jwt.get_unverified_header(token)


@beartype
def is_hmac_algorithm(alg: str) -> bool:
    """Check if ``alg`` is a shared-secret algorithm."""
    return alg in HMAC_ALGORITHMS


@beartype
async def fetch_jwks(uri: str) -> dict[str, Any]:
    """Download a JSON Web Key Set."""
    async with httpx.AsyncClient() as http_client:
        response = await http_client.get(uri, timeout=JWKS_FETCH_TIMEOUT)
        response.raise_for_status()
        jwks = response.json()  # SYSTEM_BOUNDARY - remote JWKS document

    if not isinstance(jwks, dict):
        raise KeyResolutionError("The JSON Web Key Set is not an object.")
    return jwks


@beartype
async def resolve_verification_key(client: Client, header: dict[str, Any]) -> Any:
    """Find the key that verifies an assertion signed by ``client``.

    HMAC assertions use the client secret, which must exist and not be
    expired. Other algorithms use the client's registered key set, selected
    by ``kid`` when the header carries one and always by the key type the
    algorithm needs.

    Raises:
        KeyResolutionError: if no suitable key is available.
    """
    alg = header.get("alg")
    if not isinstance(alg, str):
        raise KeyResolutionError("Missing algorithm.")

    if is_hmac_algorithm(alg):
        if client.secret is None or client.is_secret_expired():
            raise KeyResolutionError("The client has no usable secret.")
        return client.secret

    if client.jwks is not None:
        jwks = client.jwks
    elif client.jwks_uri is not None:
        logger.debug("Fetching JWKS of client %s", client.id)
        jwks = await fetch_jwks(client.jwks_uri)
    else:
        raise KeyResolutionError("The client has no registered keys.")

    try:
        keyset = jwt.PyJWKSet.from_dict(jwks)
    except jwt.PyJWKSetError as e:
        raise KeyResolutionError(str(e)) from e

    kid = header.get("kid")
    key_type = _KEY_TYPES.get(alg[:2])
    candidates = [
        key
        for key in keyset.keys
        if (kid is None or key.key_id == kid)
        and key.public_key_use in (None, "sig")
        and key.key_type == key_type
    ]
    if len(candidates) != 1:
        raise KeyResolutionError("Could not select a single verification key.")
    return candidates[0].key


@beartype
def verify_assertion(
    token: str,
    key: Any,
    algorithm: str,
    *,
    audience: str,
    issuer: str | None = None,
    required: list[str] | None = None,
) -> dict[str, Any]:
    """Verify signature and standard claims, returning the claims.

    Raises:
        jwt.InvalidTokenError: on any signature or claim failure.
    """
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        audience=audience,
        issuer=issuer,
        options={"require": required or ["exp"]},
    )
