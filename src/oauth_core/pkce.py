# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Proof Key for Code Exchange (RFC 7636) verification methods."""

import base64
import binascii
import hashlib
from typing import Final, Protocol, runtime_checkable

from beartype import beartype

from .core.security import constant_time_compare_bytes
from .exceptions import ConfigurationError


@runtime_checkable
class PkceMethod(Protocol):
    """Compares an authorization-time challenge to a token-time verifier."""

    name: str

    def verify(self, challenge: str, verifier: str) -> bool: ...


class PlainPkceMethod:
    """``plain``: the verifier is the challenge."""

    name = "plain"

    @beartype
    def verify(self, challenge: str, verifier: str) -> bool:
        """Compare the UTF-8 bytes of challenge and verifier in constant time."""
        return constant_time_compare_bytes(challenge.encode("utf-8"), verifier.encode("utf-8"))


class S256PkceMethod:
    """``S256``: the challenge is BASE64URL(SHA256(ASCII(verifier)))."""

    name = "S256"

    @beartype
    def verify(self, challenge: str, verifier: str) -> bool:
        """Compare the decoded challenge with the verifier digest in constant time."""
        try:
            expected = _b64url_decode(challenge)
            digest = hashlib.sha256(verifier.encode("ascii")).digest()
        except (binascii.Error, UnicodeEncodeError, ValueError):
            return False
        return constant_time_compare_bytes(expected, digest)


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.b64decode(value + padding, altchars=b"-_", validate=True)


PKCE_METHODS: Final[dict[str, PkceMethod]] = {
    "S256": S256PkceMethod(),
    "plain": PlainPkceMethod(),
}


@beartype
def get_pkce_method(name: str) -> PkceMethod:
    """Resolve a PKCE method by name.

    Raises:
        ConfigurationError: if the method is not one the engine implements.
    """
    try:
        return PKCE_METHODS[name]
    except KeyError:
        raise ConfigurationError(f'Unsupported PKCE Method "{name}".') from None


__all__ = ["PKCE_METHODS", "PkceMethod", "PlainPkceMethod", "S256PkceMethod", "get_pkce_method"]
