# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Storage service contracts consumed by the engine.

The engine owns no state. Every lookup, creation and revocation goes through
one of these services. ``revoke`` on single-use artifacts (authorization
codes, device codes, rotated refresh tokens) is a check-and-set: it returns
False when the artifact was already revoked, and the engine issues nothing
in that case. ``RefreshTokenService.rotate`` is likewise a single
check-and-set that returns None when the presented token was already revoked.

Methods marked optional may be missing; components that need them call
:func:`require_methods` while the server is being composed so that a
missing implementation fails at startup instead of on the first request.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from beartype import beartype

from ..exceptions import ConfigurationError
from ..models import AccessToken, AuthorizationCode, Client, DeviceCode, RefreshToken, User

if TYPE_CHECKING:
    from ..registration.contexts import PostRegistrationContext, PutRegistrationContext


@runtime_checkable
class ClientService(Protocol):
    """Persistence of registered clients."""

    async def find_one(self, client_id: str) -> Client | None: ...

    async def create(self, context: "PostRegistrationContext") -> Client: ...

    async def update(self, client: Client, context: "PutRegistrationContext") -> Client: ...

    async def remove(self, client: Client) -> None: ...


@runtime_checkable
class AccessTokenService(Protocol):
    """Persistence of access tokens, including registration access tokens."""

    async def create(
        self, scopes: list[str], client: Client | None, user: User | None
    ) -> AccessToken: ...

    async def create_registration_access_token(self, client: Client) -> AccessToken: ...

    async def find_one(self, handle: str) -> AccessToken | None: ...

    async def revoke(self, token: AccessToken) -> bool: ...


@runtime_checkable
class RefreshTokenService(Protocol):
    """Persistence of refresh tokens.

    Rotation is a separate capability, see :class:`RotatingRefreshTokenService`.
    """

    async def create(self, scopes: list[str], client: Client, user: User | None) -> RefreshToken: ...

    async def find_one(self, handle: str) -> RefreshToken | None: ...

    async def revoke(self, token: RefreshToken) -> bool: ...


@runtime_checkable
class RotatingRefreshTokenService(RefreshTokenService, Protocol):
    """Refresh token service that can rotate, required when rotation is enabled."""

    async def rotate(self, token: RefreshToken) -> RefreshToken | None:
        """Revoke ``token`` and return a copy under a fresh handle.

        Returns None if ``token`` was already revoked.
        """
        ...


@runtime_checkable
class AuthorizationCodeService(Protocol):
    """Persistence of authorization codes issued by the authorization endpoint."""

    async def find_one(self, code: str) -> AuthorizationCode | None: ...

    async def revoke(self, code: AuthorizationCode) -> bool:
        """Consume ``code``; return False if it was already consumed."""
        ...


@runtime_checkable
class DeviceCodeService(Protocol):
    """Persistence of device codes and polling bookkeeping.

    ``create`` is only required by the device authorization endpoint.
    """

    async def create(self, client: Client, scopes: list[str]) -> DeviceCode: ...

    async def find_one(self, code: str) -> DeviceCode | None: ...

    async def revoke(self, device_code: DeviceCode) -> bool:
        """Consume ``device_code``; return False if it was already consumed."""
        ...

    async def should_slow_down(self, device_code: DeviceCode) -> bool: ...


@runtime_checkable
class UserService(Protocol):
    """Read access to End-Users."""

    async def find_one(self, user_id: str) -> User | None: ...


@runtime_checkable
class ResourceOwnerUserService(UserService, Protocol):
    """User service that checks End-User passwords, required by the password grant."""

    async def find_by_resource_owner_credentials(
        self, username: str, password: str
    ) -> User | None: ...


@runtime_checkable
class UserinfoService(UserService, Protocol):
    """User service that releases End-User claims for ID Tokens and the userinfo endpoint."""

    async def get_userinfo(self, user: User, scopes: list[str]) -> dict[str, Any]:
        """Claims about ``user`` allowed by ``scopes``, without ``sub``."""
        ...


@runtime_checkable
class ClientAssertionService(Protocol):
    """Replay protection for JWT client assertions."""

    async def register_jti(self, client_id: str, jti: str, expires_at: datetime) -> bool:
        """Record ``jti`` for ``client_id``; return False if it was already recorded."""
        ...


@beartype
def require_methods(service: Any, interface: str, names: Iterable[str]) -> None:
    """Fail fast if ``service`` lacks one of the named methods.

    Raises:
        ConfigurationError: naming the first missing ``Interface.method``.
    """
    for name in names:
        if not callable(getattr(service, name, None)):
            raise ConfigurationError(
                f'Missing implementation of required method "{interface}.{name}".'
            )


__all__ = [
    "AccessTokenService",
    "AuthorizationCodeService",
    "ClientAssertionService",
    "ClientService",
    "DeviceCodeService",
    "RefreshTokenService",
    "ResourceOwnerUserService",
    "RotatingRefreshTokenService",
    "UserService",
    "UserinfoService",
    "require_methods",
]
