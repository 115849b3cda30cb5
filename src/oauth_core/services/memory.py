# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""In-memory reference implementations of the storage services.

These are suitable for tests and local development only: state lives in
process memory and disappears on restart. Every mutation happens without an
intervening ``await``, which makes check-and-set sequences atomic on a single
event loop.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any

from beartype import beartype
from passlib.context import CryptContext

from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.security import generate_handle
from ..models import (
    AccessToken,
    AuthorizationCode,
    Client,
    Consent,
    DeviceCode,
    RefreshToken,
    Session,
    User,
    utc_now,
)
from ..registration.contexts import PostRegistrationContext, PutRegistrationContext

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

SECRET_AUTHENTICATION_METHODS = ("client_secret_basic", "client_secret_post", "client_secret_jwt")
REGISTRATION_SCOPES = ["client:manage"]


class InMemoryClientService:
    """Client registry."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._clients: dict[str, Client] = {}

    @beartype
    async def find_one(self, client_id: str) -> Client | None:
        """Look up a client by identifier."""
        return self._clients.get(client_id)

    @beartype
    async def create(self, context: PostRegistrationContext) -> Client:
        """Create a client from validated registration metadata."""
        client_id = generate_handle(16)
        secret = None
        if context.metadata.get("authentication_method") in SECRET_AUTHENTICATION_METHODS:
            secret = generate_handle(32)

        client = Client(id=client_id, secret=secret, **context.metadata)
        self._clients[client.id] = client
        logger.info("Registered client %s", client.id)
        return client

    @beartype
    async def update(self, client: Client, context: PutRegistrationContext) -> Client:
        """Replace the metadata of a client, keeping its credentials."""
        data = client.model_dump()
        data.update(context.metadata)
        if (
            data.get("authentication_method") in SECRET_AUTHENTICATION_METHODS
            and data.get("secret") is None
        ):
            data["secret"] = generate_handle(32)
        elif data.get("authentication_method") not in SECRET_AUTHENTICATION_METHODS:
            data["secret"] = None
            data["secret_expires_at"] = None

        updated = Client.model_validate(data)
        self._clients[updated.id] = updated
        logger.info("Updated client %s", updated.id)
        return updated

    @beartype
    async def remove(self, client: Client) -> None:
        """Delete a client."""
        self._clients.pop(client.id, None)
        logger.info("Removed client %s", client.id)

    @beartype
    def save(self, client: Client) -> Client:
        """Store a client directly, bypassing registration."""
        self._clients[client.id] = client
        return client


class InMemoryAccessTokenService:
    """Access token store."""

    def __init__(self, settings: Settings) -> None:
        """Initialize with lifetimes taken from settings."""
        self._settings = settings
        self._tokens: dict[str, AccessToken] = {}

    @beartype
    async def create(
        self, scopes: list[str], client: Client | None, user: User | None
    ) -> AccessToken:
        """Issue an access token."""
        return self._issue(scopes, client, user, self._settings.access_token_lifetime)

    @beartype
    async def create_registration_access_token(self, client: Client) -> AccessToken:
        """Issue the token that manages ``client`` through the registration endpoint."""
        return self._issue(
            REGISTRATION_SCOPES,
            client,
            None,
            self._settings.registration_access_token_lifetime,
        )

    @beartype
    async def create_initial_access_token(
        self, scopes: list[str], lifetime: int | None = None
    ) -> AccessToken:
        """Issue an Initial Access Token that is not bound to any client."""
        return self._issue(scopes, None, None, lifetime or self._settings.access_token_lifetime)

    def _issue(
        self,
        scopes: list[str],
        client: Client | None,
        user: User | None,
        lifetime: int,
    ) -> AccessToken:
        now = utc_now()
        token = AccessToken(
            handle=generate_handle(),
            scopes=list(scopes),
            issued_at=now,
            valid_after=now,
            expires_at=now + timedelta(seconds=lifetime),
            client=client,
            user=user,
        )
        self._tokens[token.handle] = token
        return token

    @beartype
    async def find_one(self, handle: str) -> AccessToken | None:
        """Look up an access token by handle."""
        return self._tokens.get(handle)

    @beartype
    async def revoke(self, token: AccessToken) -> bool:
        """Mark an access token revoked; return False if it already was."""
        stored = self._tokens.get(token.handle, token)
        if stored.is_revoked:
            return False
        self._tokens[token.handle] = stored.model_copy(update={"is_revoked": True})
        return True


class InMemoryRefreshTokenService:
    """Refresh token store with rotation support."""

    def __init__(self, settings: Settings) -> None:
        """Initialize with lifetimes taken from settings."""
        self._settings = settings
        self._tokens: dict[str, RefreshToken] = {}

    @beartype
    async def create(self, scopes: list[str], client: Client, user: User | None) -> RefreshToken:
        """Issue a refresh token."""
        now = utc_now()
        token = RefreshToken(
            handle=generate_handle(),
            scopes=list(scopes),
            issued_at=now,
            valid_after=now,
            expires_at=now + timedelta(seconds=self._settings.refresh_token_lifetime),
            client=client,
            user=user,
        )
        self._tokens[token.handle] = token
        return token

    @beartype
    async def find_one(self, handle: str) -> RefreshToken | None:
        """Look up a refresh token by handle."""
        return self._tokens.get(handle)

    @beartype
    async def revoke(self, token: RefreshToken) -> bool:
        """Mark a refresh token revoked; return False if it already was."""
        stored = self._tokens.get(token.handle, token)
        if stored.is_revoked:
            return False
        self._tokens[token.handle] = stored.model_copy(update={"is_revoked": True})
        return True

    @beartype
    async def rotate(self, token: RefreshToken) -> RefreshToken | None:
        """Revoke ``token`` and store a copy under a fresh handle.

        Returns None if ``token`` was already revoked.
        """
        stored = self._tokens.get(token.handle, token)
        if stored.is_revoked:
            return None
        replacement = stored.model_copy(update={"handle": generate_handle()})
        self._tokens[token.handle] = stored.model_copy(update={"is_revoked": True})
        self._tokens[replacement.handle] = replacement
        return replacement


class InMemoryAuthorizationCodeService:
    """Authorization code store."""

    def __init__(self, lifetime: int = 300) -> None:
        """Initialize with the code lifetime in seconds."""
        self._lifetime = lifetime
        self._codes: dict[str, AuthorizationCode] = {}

    @beartype
    async def create(
        self,
        parameters: dict[str, str],
        consent: Consent,
        session: Session | None = None,
    ) -> AuthorizationCode:
        """Issue a code for an authorization request the End-User consented to."""
        now = utc_now()
        code = AuthorizationCode(
            code=generate_handle(),
            scopes=list(consent.scopes),
            issued_at=now,
            valid_after=now,
            expires_at=now + timedelta(seconds=self._lifetime),
            client=consent.client,
            user=consent.user,
            parameters=dict(parameters),
            session=session,
            consent=consent,
        )
        self._codes[code.code] = code
        return code

    @beartype
    async def find_one(self, code: str) -> AuthorizationCode | None:
        """Look up an authorization code."""
        return self._codes.get(code)

    @beartype
    async def revoke(self, code: AuthorizationCode) -> bool:
        """Mark an authorization code consumed; return False if it already was."""
        stored = self._codes.get(code.code, code)
        if stored.is_revoked:
            return False
        self._codes[code.code] = stored.model_copy(update={"is_revoked": True})
        return True


class InMemoryDeviceCodeService:
    """Device code store that enforces the polling interval."""

    def __init__(self, settings: Settings, lifetime: int = 1800) -> None:
        """Initialize with the polling interval from settings."""
        self._settings = settings
        self._lifetime = lifetime
        self._codes: dict[str, DeviceCode] = {}
        self._last_polled: dict[str, datetime] = {}

    @beartype
    async def create(self, client: Client, scopes: list[str]) -> DeviceCode:
        """Issue a device code and its user code."""
        now = utc_now()
        device_code = DeviceCode(
            code=generate_handle(),
            user_code=secrets.token_hex(4).upper(),
            scopes=list(scopes),
            issued_at=now,
            valid_after=now,
            expires_at=now + timedelta(seconds=self._lifetime),
            client=client,
        )
        self._codes[device_code.code] = device_code
        return device_code

    @beartype
    async def decide(self, device_code: DeviceCode, user: User, authorized: bool) -> DeviceCode:
        """Record the End-User decision taken on the verification page."""
        stored = self._codes.get(device_code.code, device_code)
        decided = stored.model_copy(update={"is_authorized": authorized, "user": user})
        self._codes[decided.code] = decided
        return decided

    @beartype
    async def find_one(self, code: str) -> DeviceCode | None:
        """Look up a device code."""
        return self._codes.get(code)

    @beartype
    async def revoke(self, device_code: DeviceCode) -> bool:
        """Mark a device code consumed; return False if it already was."""
        stored = self._codes.get(device_code.code, device_code)
        if stored.is_revoked:
            return False
        self._codes[device_code.code] = stored.model_copy(update={"is_revoked": True})
        return True

    @beartype
    async def should_slow_down(self, device_code: DeviceCode) -> bool:
        """Record this poll and report whether it came too soon after the last one."""
        now = utc_now()
        last = self._last_polled.get(device_code.code)
        self._last_polled[device_code.code] = now
        if last is None:
            return False
        return (now - last).total_seconds() < self._settings.device_polling_interval


class InMemoryUserService:
    """End-User directory with argon2 password hashes."""

    def __init__(self) -> None:
        """Initialize an empty directory."""
        self._users: dict[str, User] = {}
        self._password_hashes: dict[str, str] = {}

    @beartype
    def add_user(
        self,
        username: str,
        password: str,
        user_id: str | None = None,
        *,
        name: str | None = None,
        email: str | None = None,
        email_verified: bool = False,
    ) -> User:
        """Register an End-User with a password."""
        user = User(
            id=user_id or generate_handle(12),
            username=username,
            name=name,
            email=email,
            email_verified=email_verified,
        )
        self._users[user.id] = user
        self._password_hashes[user.id] = pwd_context.hash(password)
        return user

    @beartype
    async def find_one(self, user_id: str) -> User | None:
        """Look up an End-User by subject identifier."""
        return self._users.get(user_id)

    @beartype
    async def find_by_resource_owner_credentials(
        self, username: str, password: str
    ) -> User | None:
        """Authenticate an End-User by username and password."""
        for user in self._users.values():
            if user.username == username:
                if pwd_context.verify(password, self._password_hashes[user.id]):
                    return user
                return None
        return None

    @beartype
    async def get_userinfo(self, user: User, scopes: list[str]) -> dict[str, Any]:
        """Standard claims of ``user`` released by ``scopes``."""
        claims: dict[str, Any] = {}
        if "profile" in scopes:
            claims["preferred_username"] = user.username
            claims["name"] = user.name
        if "email" in scopes:
            claims["email"] = user.email
            claims["email_verified"] = user.email_verified
        return {key: value for key, value in claims.items() if value is not None}


class InMemoryClientAssertionService:
    """Registry of client assertion identifiers already used."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._seen: dict[tuple[str, str], datetime] = {}

    @beartype
    async def register_jti(self, client_id: str, jti: str, expires_at: datetime) -> bool:
        """Record ``jti`` for ``client_id``; return False if it is still recorded."""
        now = utc_now()
        self._seen = {key: exp for key, exp in self._seen.items() if exp > now}
        key = (client_id, jti)
        if key in self._seen:
            return False
        self._seen[key] = expires_at
        return True

