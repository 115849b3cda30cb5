# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Security primitives shared by the protocol components."""

import hmac
import secrets
from typing import Any

from beartype import beartype
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm


@beartype
def constant_time_compare_bytes(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in constant time.

    Inputs of different length return ``False`` immediately; the digest
    comparison only ever runs on equal-length buffers.
    """
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


@beartype
def constant_time_compare(a: str, b: str) -> bool:
    """Compare the UTF-8 encodings of two strings in constant time."""
    return constant_time_compare_bytes(a.encode("utf-8"), b.encode("utf-8"))


@beartype
def generate_handle(nbytes: int = 32) -> str:
    """Generate an opaque URL-safe token handle."""
    return secrets.token_urlsafe(nbytes)


@beartype
def generate_signing_keys(kid: str | None = None) -> dict[str, Any]:
    """Generate a private JSON Web Key Set holding one RS256 signing key."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    jwk = RSAAlgorithm.to_jwk(private_key, as_dict=True)
    jwk.update({"kid": kid or generate_handle(8), "use": "sig", "alg": "RS256"})
    return {"keys": [jwk]}
