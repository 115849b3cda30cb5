"""Unit tests for the in-memory reference services."""

from datetime import timedelta

import pytest

from oauth_core.main import InMemoryBackend
from oauth_core.models import Client, Consent, User, utc_now


class TestSingleUseArtifacts:
    """Revocation is a check-and-set that only ever succeeds once."""

    @pytest.mark.asyncio
    async def test_access_token_revocation(
        self, backend: InMemoryBackend, confidential_client: Client, user: User
    ) -> None:
        token = await backend.access_tokens.create(["openid"], confidential_client, user)

        assert await backend.access_tokens.revoke(token) is True
        assert await backend.access_tokens.revoke(token) is False
        stored = await backend.access_tokens.find_one(token.handle)
        assert stored is not None and stored.is_revoked is True

    @pytest.mark.asyncio
    async def test_refresh_token_revocation(
        self, backend: InMemoryBackend, confidential_client: Client, user: User
    ) -> None:
        token = await backend.refresh_tokens.create(["openid"], confidential_client, user)

        assert await backend.refresh_tokens.revoke(token) is True
        assert await backend.refresh_tokens.revoke(token) is False
        assert await backend.refresh_tokens.rotate(token) is None

    @pytest.mark.asyncio
    async def test_stale_copy_cannot_revoke_twice(
        self, backend: InMemoryBackend, confidential_client: Client, user: User
    ) -> None:
        token = await backend.refresh_tokens.create(["openid"], confidential_client, user)
        stale = token.model_copy()

        await backend.refresh_tokens.revoke(token)

        assert stale.is_revoked is False
        assert await backend.refresh_tokens.revoke(stale) is False

    @pytest.mark.asyncio
    async def test_rotation_only_once(
        self, backend: InMemoryBackend, confidential_client: Client, user: User
    ) -> None:
        token = await backend.refresh_tokens.create(["openid"], confidential_client, user)

        replacement = await backend.refresh_tokens.rotate(token)

        assert replacement is not None
        assert replacement.handle != token.handle
        assert replacement.scopes == token.scopes
        assert await backend.refresh_tokens.rotate(token) is None

    @pytest.mark.asyncio
    async def test_authorization_code_consumption(
        self, backend: InMemoryBackend, consent: Consent
    ) -> None:
        code = await backend.authorization_codes.create({}, consent)

        assert await backend.authorization_codes.revoke(code) is True
        assert await backend.authorization_codes.revoke(code) is False
        stored = await backend.authorization_codes.find_one(code.code)
        assert stored is not None and stored.is_revoked is True

    @pytest.mark.asyncio
    async def test_device_code_consumption(
        self, backend: InMemoryBackend, confidential_client: Client
    ) -> None:
        device_code = await backend.device_codes.create(confidential_client, ["openid"])

        assert await backend.device_codes.revoke(device_code) is True
        assert await backend.device_codes.revoke(device_code) is False


class TestInMemoryUserService:
    """Tests for End-User lookup and claims."""

    @pytest.mark.asyncio
    async def test_resource_owner_credentials(self, backend: InMemoryBackend, user: User) -> None:
        found = await backend.users.find_by_resource_owner_credentials(
            "alice", "correct horse battery staple"
        )

        assert found == user
        assert await backend.users.find_by_resource_owner_credentials("alice", "wrong") is None
        assert await backend.users.find_by_resource_owner_credentials("bob", "anything") is None

    @pytest.mark.asyncio
    async def test_userinfo_follows_scopes(self, backend: InMemoryBackend) -> None:
        user = backend.users.add_user(
            "bob", "hunter2-hunter2", name="Bob Example", email="bob@example.com", email_verified=True
        )

        assert await backend.users.get_userinfo(user, ["openid"]) == {}
        assert await backend.users.get_userinfo(user, ["openid", "profile"]) == {
            "preferred_username": "bob",
            "name": "Bob Example",
        }
        assert await backend.users.get_userinfo(user, ["email"]) == {
            "email": "bob@example.com",
            "email_verified": True,
        }

    @pytest.mark.asyncio
    async def test_userinfo_omits_unknown_claims(self, backend: InMemoryBackend, user: User) -> None:
        claims = await backend.users.get_userinfo(user, ["profile", "email"])

        assert claims == {"preferred_username": "alice", "email_verified": False}


class TestInMemoryClientAssertionService:
    """Tests for client assertion replay detection."""

    @pytest.mark.asyncio
    async def test_identifier_is_scoped_to_the_client(self, backend: InMemoryBackend) -> None:
        expires_at = utc_now() + timedelta(minutes=5)

        assert await backend.client_assertions.register_jti("client_a", "jti-1", expires_at)
        assert not await backend.client_assertions.register_jti("client_a", "jti-1", expires_at)
        assert await backend.client_assertions.register_jti("client_b", "jti-1", expires_at)

    @pytest.mark.asyncio
    async def test_expired_identifiers_are_forgotten(self, backend: InMemoryBackend) -> None:
        expired = utc_now() - timedelta(seconds=1)

        assert await backend.client_assertions.register_jti("client_a", "jti-1", expired)
        assert await backend.client_assertions.register_jti(
            "client_a", "jti-1", utc_now() + timedelta(minutes=5)
        )
