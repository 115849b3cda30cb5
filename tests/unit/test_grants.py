"""Unit tests for the grant type processors behind the token endpoint."""

import asyncio
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from oauth_core.core.config import DEVICE_CODE_GRANT, JWT_BEARER_GRANT, Settings
from oauth_core.exceptions import (
    AccessDenied,
    AuthorizationPending,
    ExpiredToken,
    InvalidGrant,
    InvalidRequest,
    InvalidScope,
    ServerError,
    SlowDown,
    UnauthorizedClient,
)
from oauth_core.grant_types import DeviceCodeContext, TokenResponse
from oauth_core.id_token import left_hash
from oauth_core.main import InMemoryBackend
from oauth_core.models import (
    AuthorizationCode,
    Client,
    Consent,
    DeviceCode,
    RefreshToken,
    Session,
    User,
    utc_now,
)
from oauth_core.server import AuthorizationServer

from helpers import CONFIDENTIAL_SECRET, ISSUER, basic_authorization, token_request

REDIRECT_URI = "https://client.example.com/callback"
S256_CHALLENGE = "8xJ5XjIsh0YabzxJ4JiXxZyg1aNiRdKgDwjLxm7ul20"
PKCE_PARAMETERS = {
    "redirect_uri": REDIRECT_URI,
    "code_challenge": S256_CHALLENGE,
    "code_challenge_method": "S256",
}


async def _run_grant(
    server: AuthorizationServer, client: Client, body: dict[str, Any], secret: str = CONFIDENTIAL_SECRET
) -> Any:
    """Validate and issue, returning the token response or the first error."""
    grant = server.grant_types[body["grant_type"]]
    request = token_request(body, headers=basic_authorization(client.id, secret))
    validated = await grant.validate(request)
    if validated.is_err():
        return validated.err_value
    issued = await grant.issue_tokens(validated.ok_value)
    return issued.ok_value if issued.is_ok() else issued.err_value


class TestAuthorizationCodeGrant:
    """Tests for the authorization code exchange."""

    @pytest_asyncio.fixture
    async def authorization_code(self, backend: InMemoryBackend, consent: Consent) -> str:
        code = await backend.authorization_codes.create(
            {
                "redirect_uri": REDIRECT_URI,
                "code_challenge": S256_CHALLENGE,
                "code_challenge_method": "S256",
            },
            consent,
        )
        return code.code

    def _body(self, code: str, **overrides: str) -> dict[str, str]:
        body = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": REDIRECT_URI,
            "code_verifier": "abcxyz",
        }
        body.update(overrides)
        return body

    @pytest.mark.asyncio
    async def test_exchange_issues_access_and_refresh_tokens(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
        authorization_code: str,
    ) -> None:
        response = await _run_grant(server, confidential_client, self._body(authorization_code))

        assert isinstance(response, TokenResponse)
        assert response.token_type == "Bearer"
        assert response.scope == "openid profile"
        assert response.refresh_token is not None
        assert 0 < response.expires_in <= 3600

        access_token = await backend.access_tokens.find_one(response.access_token)
        assert access_token is not None
        assert access_token.user == user
        assert access_token.client is not None
        assert access_token.client.id == confidential_client.id

    @pytest.mark.asyncio
    async def test_code_is_single_use(
        self, server: AuthorizationServer, confidential_client: Client, authorization_code: str
    ) -> None:
        first = await _run_grant(server, confidential_client, self._body(authorization_code))
        second = await _run_grant(server, confidential_client, self._body(authorization_code))

        assert isinstance(first, TokenResponse)
        assert isinstance(second, InvalidGrant)
        assert second.error_description == "Revoked Authorization Code."

    @pytest.mark.asyncio
    async def test_concurrent_exchanges_issue_tokens_once(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        authorization_code: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        find_one = backend.authorization_codes.find_one

        async def find_one_then_yield(code: str) -> AuthorizationCode | None:
            found = await find_one(code)
            await asyncio.sleep(0)
            return found

        monkeypatch.setattr(backend.authorization_codes, "find_one", find_one_then_yield)

        results = await asyncio.gather(
            _run_grant(server, confidential_client, self._body(authorization_code)),
            _run_grant(server, confidential_client, self._body(authorization_code)),
        )

        issued = [result for result in results if isinstance(result, TokenResponse)]
        rejected = [result for result in results if isinstance(result, InvalidGrant)]
        assert len(issued) == 1
        assert len(rejected) == 1
        assert rejected[0].error_description == "Revoked Authorization Code."

    @pytest.mark.asyncio
    async def test_openid_exchange_issues_id_token(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
        consent: Consent,
        signing_keys: dict[str, Any],
    ) -> None:
        session = Session(id="session_1", user=user)
        code = await backend.authorization_codes.create(
            {**PKCE_PARAMETERS, "nonce": "n-0S6_WzA2Mj", "max_age": "300"},
            consent,
            session,
        )

        response = await _run_grant(
            server, confidential_client, self._body(code.code)
        )

        assert isinstance(response, TokenResponse)
        assert response.id_token is not None
        assert jwt.get_unverified_header(response.id_token)["kid"] == "server-key-1"
        public_key = jwt.PyJWK.from_dict(signing_keys["keys"][0]).key.public_key()
        claims = jwt.decode(
            response.id_token,
            public_key,
            algorithms=["RS256"],
            audience=confidential_client.id,
            issuer=ISSUER,
        )
        assert claims["sub"] == user.id
        assert claims["azp"] == confidential_client.id
        assert claims["nonce"] == "n-0S6_WzA2Mj"
        assert claims["sid"] == "session_1"
        assert claims["auth_time"] == int(session.created_at.timestamp())
        assert claims["at_hash"] == left_hash(response.access_token, "RS256")
        assert claims["preferred_username"] == "alice"
        assert "email" not in claims

    @pytest.mark.asyncio
    async def test_no_id_token_without_openid(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        consent: Consent,
    ) -> None:
        profile_only = consent.model_copy(update={"scopes": ["profile"]})
        code = await backend.authorization_codes.create(PKCE_PARAMETERS, profile_only)

        response = await _run_grant(
            server, confidential_client, self._body(code.code)
        )

        assert isinstance(response, TokenResponse)
        assert response.id_token is None

    @pytest.mark.asyncio
    async def test_encrypted_id_token_is_refused(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        make_client: Callable[..., Client],
        user: User,
    ) -> None:
        client = make_client(
            id_token_encrypted_response_key_wrap="RSA-OAEP",
            id_token_encrypted_response_content_encryption="A128GCM",
        )
        consent = Consent(id="consent_2", scopes=["openid"], client=client, user=user)
        code = await backend.authorization_codes.create(PKCE_PARAMETERS, consent)

        error = await _run_grant(server, client, self._body(code.code))

        assert isinstance(error, ServerError)
        assert error.error_description == "Encrypted ID Tokens are not supported."

    @pytest.mark.asyncio
    async def test_wrong_verifier_still_consumes_the_code(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        authorization_code: str,
    ) -> None:
        error = await _run_grant(
            server, confidential_client, self._body(authorization_code, code_verifier="abc123")
        )

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "Invalid PKCE Code Challenge."
        stored = await backend.authorization_codes.find_one(authorization_code)
        assert stored is not None
        assert stored.is_revoked is True

    @pytest.mark.asyncio
    async def test_missing_verifier(
        self, server: AuthorizationServer, confidential_client: Client, authorization_code: str
    ) -> None:
        body = self._body(authorization_code)
        del body["code_verifier"]

        error = await _run_grant(server, confidential_client, body)

        assert error.error_description == "Missing PKCE Code Verifier."

    @pytest.mark.asyncio
    async def test_mismatching_redirect_uri(
        self, server: AuthorizationServer, confidential_client: Client, authorization_code: str
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            self._body(authorization_code, redirect_uri="https://client.example.com/other"),
        )

        assert error.error_description == "Mismatching Redirect URI."

    @pytest.mark.asyncio
    async def test_redirect_uri_with_fragment(
        self, server: AuthorizationServer, confidential_client: Client, authorization_code: str
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            self._body(authorization_code, redirect_uri=f"{REDIRECT_URI}#fragment"),
        )

        assert isinstance(error, InvalidRequest)
        assert error.error_description == "The Redirect URI MUST NOT have a fragment component."

    @pytest.mark.asyncio
    async def test_code_of_another_client(
        self,
        server: AuthorizationServer,
        make_client: Callable[..., Client],
        authorization_code: str,
    ) -> None:
        other = make_client(id="other_client")

        error = await _run_grant(server, other, self._body(authorization_code))

        assert error.error_description == "Mismatching Client Identifier."

    @pytest.mark.asyncio
    async def test_unknown_code(
        self, server: AuthorizationServer, confidential_client: Client
    ) -> None:
        error = await _run_grant(server, confidential_client, self._body("unknown"))

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "Invalid Authorization Code."

    @pytest.mark.asyncio
    async def test_code_without_challenge_rejects_a_verifier(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        consent: Consent,
    ) -> None:
        code = await backend.authorization_codes.create({"redirect_uri": REDIRECT_URI}, consent)

        error = await _run_grant(server, confidential_client, self._body(code.code))

        assert error.error_description == (
            "No PKCE Code Challenge was recorded for this Authorization Code."
        )


class TestClientCredentialsGrant:
    """Tests for the client credentials grant."""

    @pytest.mark.asyncio
    async def test_issues_access_token_only(
        self, server: AuthorizationServer, backend: InMemoryBackend, confidential_client: Client
    ) -> None:
        response = await _run_grant(
            server, confidential_client, {"grant_type": "client_credentials", "scope": "openid"}
        )

        assert response.scope == "openid"
        assert response.refresh_token is None
        access_token = await backend.access_tokens.find_one(response.access_token)
        assert access_token is not None
        assert access_token.user is None

    @pytest.mark.asyncio
    async def test_defaults_to_registered_scopes(
        self, server: AuthorizationServer, confidential_client: Client
    ) -> None:
        response = await _run_grant(server, confidential_client, {"grant_type": "client_credentials"})

        assert response.scope == "openid profile email"

    @pytest.mark.asyncio
    async def test_unsupported_scope(
        self, server: AuthorizationServer, confidential_client: Client
    ) -> None:
        error = await _run_grant(
            server, confidential_client, {"grant_type": "client_credentials", "scope": "admin"}
        )

        assert isinstance(error, InvalidScope)
        assert error.error_description == 'Unsupported scope "admin".'

    @pytest.mark.asyncio
    async def test_unregistered_scope(
        self, server: AuthorizationServer, confidential_client: Client
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            {"grant_type": "client_credentials", "scope": "openid client:manage"},
        )

        assert error.error_description == (
            'The Client is not allowed to request the scope "client:manage".'
        )

    @pytest.mark.asyncio
    async def test_client_without_the_grant(
        self, server: AuthorizationServer, make_client: Callable[..., Client]
    ) -> None:
        client = make_client(grant_types=["authorization_code"])

        error = await _run_grant(server, client, {"grant_type": "client_credentials"})

        assert isinstance(error, UnauthorizedClient)
        assert error.error_description == (
            'This Client is not allowed to request the grant_type "client_credentials".'
        )


class TestPasswordGrant:
    """Tests for the resource owner password credentials grant."""

    @pytest.mark.asyncio
    async def test_valid_credentials(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
    ) -> None:
        response = await _run_grant(
            server,
            confidential_client,
            {
                "grant_type": "password",
                "username": "alice",
                "password": "correct horse battery staple",
                "scope": "openid",
            },
        )

        assert response.refresh_token is not None
        refresh_token = await backend.refresh_tokens.find_one(response.refresh_token)
        assert refresh_token is not None
        assert refresh_token.user == user

    @pytest.mark.asyncio
    async def test_wrong_password(
        self, server: AuthorizationServer, confidential_client: Client, user: User
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            {"grant_type": "password", "username": "alice", "password": "wrong"},
        )

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "Invalid Credentials."

    @pytest.mark.asyncio
    async def test_missing_username(
        self, server: AuthorizationServer, confidential_client: Client
    ) -> None:
        error = await _run_grant(
            server, confidential_client, {"grant_type": "password", "password": "secret"}
        )

        assert isinstance(error, InvalidRequest)
        assert error.error_description == 'Invalid parameter "username".'

    @pytest.mark.asyncio
    async def test_no_refresh_token_without_refresh_grant(
        self, server: AuthorizationServer, make_client: Callable[..., Client], user: User
    ) -> None:
        client = make_client(grant_types=["password"])

        response = await _run_grant(
            server,
            client,
            {
                "grant_type": "password",
                "username": "alice",
                "password": "correct horse battery staple",
            },
        )

        assert response.refresh_token is None


class TestRefreshTokenGrant:
    """Tests for the refresh token grant."""

    @pytest_asyncio.fixture
    async def refresh_token(
        self, backend: InMemoryBackend, confidential_client: Client, user: User
    ) -> str:
        token = await backend.refresh_tokens.create(["openid", "profile"], confidential_client, user)
        return token.handle

    @pytest.mark.asyncio
    async def test_narrower_scope(
        self, server: AuthorizationServer, confidential_client: Client, refresh_token: str
    ) -> None:
        response = await _run_grant(
            server,
            confidential_client,
            {"grant_type": "refresh_token", "refresh_token": refresh_token, "scope": "openid"},
        )

        assert response.scope == "openid"
        assert response.refresh_token == refresh_token

    @pytest.mark.asyncio
    async def test_scope_not_previously_granted(
        self, server: AuthorizationServer, confidential_client: Client, refresh_token: str
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            {"grant_type": "refresh_token", "refresh_token": refresh_token, "scope": "openid email"},
        )

        assert isinstance(error, InvalidGrant)
        assert error.error_description == 'The scope "email" was not previously granted.'

    @pytest.mark.asyncio
    async def test_unsupported_scope(
        self, server: AuthorizationServer, confidential_client: Client, refresh_token: str
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            {"grant_type": "refresh_token", "refresh_token": refresh_token, "scope": "openid admin"},
        )

        assert isinstance(error, InvalidScope)
        assert error.error_description == 'Unsupported scope "admin".'

    @pytest.mark.asyncio
    async def test_scope_not_registered_for_the_client(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        make_client: Callable[..., Client],
        user: User,
    ) -> None:
        client = make_client(id="narrow_client", scopes=["openid"])
        token = await backend.refresh_tokens.create(["openid", "profile"], client, user)

        error = await _run_grant(
            server,
            client,
            {"grant_type": "refresh_token", "refresh_token": token.handle, "scope": "profile"},
        )

        assert isinstance(error, InvalidScope)
        assert error.error_description == (
            'The Client is not allowed to request the scope "profile".'
        )

    @pytest.mark.asyncio
    async def test_revoked_token(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        refresh_token: str,
    ) -> None:
        stored = await backend.refresh_tokens.find_one(refresh_token)
        assert stored is not None
        await backend.refresh_tokens.revoke(stored)

        error = await _run_grant(
            server, confidential_client, {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

        assert error.error_description == "Revoked Refresh Token."

    @pytest.mark.asyncio
    async def test_token_of_another_client(
        self,
        server: AuthorizationServer,
        make_client: Callable[..., Client],
        refresh_token: str,
    ) -> None:
        other = make_client(id="other_client")

        error = await _run_grant(
            server, other, {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

        assert error.error_description == "Mismatching Client Identifier."

    @pytest.mark.asyncio
    async def test_rotation_replaces_the_token(
        self, make_client: Callable[..., Client], user: User
    ) -> None:
        settings = Settings(issuer=ISSUER, enable_refresh_token_rotation=True)
        backend = InMemoryBackend.create(settings)
        server = backend.build_server(settings)
        client = backend.clients.save(make_client())
        original = await backend.refresh_tokens.create(["openid"], client, user)

        response = await _run_grant(
            server, client, {"grant_type": "refresh_token", "refresh_token": original.handle}
        )

        assert response.refresh_token != original.handle
        old = await backend.refresh_tokens.find_one(original.handle)
        new = await backend.refresh_tokens.find_one(response.refresh_token)
        assert old is not None and old.is_revoked is True
        assert new is not None and new.is_active()

    @pytest_asyncio.fixture
    async def rotating(
        self, make_client: Callable[..., Client], signing_keys: dict[str, Any]
    ) -> tuple[AuthorizationServer, InMemoryBackend, Client]:
        settings = Settings(issuer=ISSUER, enable_refresh_token_rotation=True)
        backend = InMemoryBackend.create(settings, signing_keys)
        server = backend.build_server(settings)
        client = backend.clients.save(make_client())
        return server, backend, client

    @pytest.mark.asyncio
    async def test_rotated_token_cannot_be_reused(
        self, rotating: tuple[AuthorizationServer, InMemoryBackend, Client], user: User
    ) -> None:
        server, backend, client = rotating
        original = await backend.refresh_tokens.create(["openid"], client, user)
        body = {"grant_type": "refresh_token", "refresh_token": original.handle}

        first = await _run_grant(server, client, body)
        replay = await _run_grant(server, client, body)

        assert isinstance(first, TokenResponse)
        assert isinstance(replay, InvalidGrant)
        assert replay.error_description == "Revoked Refresh Token."

    @pytest.mark.asyncio
    async def test_concurrent_rotations_issue_tokens_once(
        self,
        rotating: tuple[AuthorizationServer, InMemoryBackend, Client],
        user: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        server, backend, client = rotating
        original = await backend.refresh_tokens.create(["openid"], client, user)
        find_one = backend.refresh_tokens.find_one

        async def find_one_then_yield(handle: str) -> RefreshToken | None:
            found = await find_one(handle)
            await asyncio.sleep(0)
            return found

        monkeypatch.setattr(backend.refresh_tokens, "find_one", find_one_then_yield)
        body = {"grant_type": "refresh_token", "refresh_token": original.handle}

        results = await asyncio.gather(
            _run_grant(server, client, body), _run_grant(server, client, body)
        )

        assert sum(isinstance(result, TokenResponse) for result in results) == 1
        rejected = [result for result in results if isinstance(result, InvalidGrant)]
        assert len(rejected) == 1
        assert rejected[0].error_description == "Revoked Refresh Token."


class TestDeviceCodeGrant:
    """Tests for device code polling."""

    @pytest_asyncio.fixture
    async def device_code(self, backend: InMemoryBackend, confidential_client: Client) -> str:
        code = await backend.device_codes.create(confidential_client, ["openid"])
        return code.code

    def _body(self, device_code: str) -> dict[str, str]:
        return {"grant_type": DEVICE_CODE_GRANT, "device_code": device_code}

    @pytest.mark.asyncio
    async def test_pending_then_slow_down(
        self, server: AuthorizationServer, confidential_client: Client, device_code: str
    ) -> None:
        first = await _run_grant(server, confidential_client, self._body(device_code))
        second = await _run_grant(server, confidential_client, self._body(device_code))

        assert isinstance(first, AuthorizationPending)
        assert isinstance(second, SlowDown)
        assert second.error_description == "Polling faster than every 5 seconds."

    @pytest.mark.asyncio
    async def test_authorized_code_issues_tokens_once(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
        device_code: str,
    ) -> None:
        stored = await backend.device_codes.find_one(device_code)
        assert stored is not None
        await backend.device_codes.decide(stored, user, True)

        response = await _run_grant(server, confidential_client, self._body(device_code))
        replay = await _run_grant(server, confidential_client, self._body(device_code))

        assert isinstance(response, TokenResponse)
        assert response.refresh_token is not None
        assert isinstance(replay, InvalidGrant)
        assert replay.error_description == "Revoked Device Code."

    @pytest.mark.asyncio
    async def test_concurrent_polls_issue_tokens_once(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
        device_code: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        stored = await backend.device_codes.find_one(device_code)
        assert stored is not None
        await backend.device_codes.decide(stored, user, True)
        find_one = backend.device_codes.find_one

        async def find_one_then_yield(code: str) -> DeviceCode | None:
            found = await find_one(code)
            await asyncio.sleep(0)
            return found

        monkeypatch.setattr(backend.device_codes, "find_one", find_one_then_yield)

        results = await asyncio.gather(
            _run_grant(server, confidential_client, self._body(device_code)),
            _run_grant(server, confidential_client, self._body(device_code)),
        )

        assert sum(isinstance(result, TokenResponse) for result in results) == 1
        rejected = [result for result in results if isinstance(result, InvalidGrant)]
        assert len(rejected) == 1
        assert rejected[0].error_description == "Revoked Device Code."

    @pytest.mark.asyncio
    async def test_denied_code(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
        device_code: str,
    ) -> None:
        stored = await backend.device_codes.find_one(device_code)
        assert stored is not None
        await backend.device_codes.decide(stored, user, False)

        error = await _run_grant(server, confidential_client, self._body(device_code))

        assert isinstance(error, AccessDenied)
        assert error.error_description == "Authorization denied by the User."

    @pytest.mark.asyncio
    async def test_expired_code(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        device_code: str,
    ) -> None:
        stored = await backend.device_codes.find_one(device_code)
        assert stored is not None
        expired = stored.model_copy(update={"expires_at": utc_now() - timedelta(seconds=1)})
        grant = server.grant_types[DEVICE_CODE_GRANT]

        result = await grant.issue_tokens(
            DeviceCodeContext(
                parameters=self._body(device_code),
                client=confidential_client,
                grant_type=DEVICE_CODE_GRANT,
                device_code=expired,
            )
        )

        assert isinstance(result.err_value, ExpiredToken)
        assert result.err_value.error == "expired_token"

    @pytest.mark.asyncio
    async def test_code_of_another_client(
        self, server: AuthorizationServer, make_client: Callable[..., Client], device_code: str
    ) -> None:
        other = make_client(id="other_client")

        error = await _run_grant(server, other, self._body(device_code))

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "Mismatching Client Identifier."


class TestJwtBearerGrant:
    """Tests for the JWT bearer authorization grant."""

    def _assertion(self, client: Client, **overrides: Any) -> str:
        claims: dict[str, Any] = {
            "iss": client.id,
            "sub": "user_1",
            "aud": f"{ISSUER}/oauth/token",
            "exp": utc_now() + timedelta(minutes=5),
        }
        claims.update(overrides)
        return jwt.encode(claims, CONFIDENTIAL_SECRET, algorithm="HS256")

    @pytest.mark.asyncio
    async def test_valid_assertion(
        self,
        server: AuthorizationServer,
        backend: InMemoryBackend,
        confidential_client: Client,
        user: User,
    ) -> None:
        response = await _run_grant(
            server,
            confidential_client,
            {"grant_type": JWT_BEARER_GRANT, "assertion": self._assertion(confidential_client)},
        )

        assert isinstance(response, TokenResponse)
        assert response.refresh_token is None
        access_token = await backend.access_tokens.find_one(response.access_token)
        assert access_token is not None
        assert access_token.user == user

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"sub": "unknown_user"},
            {"aud": "https://elsewhere.example.com/token"},
            {"iss": "someone_else"},
            {"exp": utc_now() - timedelta(minutes=5)},
        ],
    )
    async def test_invalid_assertions(
        self,
        server: AuthorizationServer,
        confidential_client: Client,
        user: User,
        overrides: dict[str, Any],
    ) -> None:
        error = await _run_grant(
            server,
            confidential_client,
            {
                "grant_type": JWT_BEARER_GRANT,
                "assertion": self._assertion(confidential_client, **overrides),
            },
        )

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "The provided Assertion is invalid."

    @pytest.mark.asyncio
    async def test_unsigned_assertion(
        self, server: AuthorizationServer, confidential_client: Client, user: User
    ) -> None:
        assertion = jwt.encode(
            {
                "iss": confidential_client.id,
                "sub": "user_1",
                "aud": f"{ISSUER}/oauth/token",
                "exp": utc_now() + timedelta(minutes=5),
            },
            None,
            algorithm="none",
        )

        error = await _run_grant(
            server, confidential_client, {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        )

        assert error.error_description == "The provided Assertion is invalid."

    @pytest.mark.asyncio
    async def test_algorithm_not_matching_the_key_type(
        self, server: AuthorizationServer, make_client: Callable[..., Client], user: User
    ) -> None:
        ec_key = ec.generate_private_key(ec.SECP256R1())
        ec_jwk = ECAlgorithm.to_jwk(ec_key.public_key(), as_dict=True)
        client = make_client(id="ec_client", jwks={"keys": [ec_jwk]})
        rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        assertion = jwt.encode(
            {
                "iss": client.id,
                "sub": "user_1",
                "aud": f"{ISSUER}/oauth/token",
                "exp": utc_now() + timedelta(minutes=5),
            },
            rsa_key,
            algorithm="RS256",
        )

        error = await _run_grant(
            server, client, {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        )

        assert isinstance(error, InvalidGrant)
        assert error.error_description == "The provided Assertion is invalid."

    @pytest.mark.asyncio
    async def test_key_selected_by_type_without_key_id(
        self, server: AuthorizationServer, make_client: Callable[..., Client], user: User
    ) -> None:
        ec_key = ec.generate_private_key(ec.SECP256R1())
        rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        client = make_client(
            id="mixed_keys_client",
            jwks={
                "keys": [
                    RSAAlgorithm.to_jwk(rsa_key.public_key(), as_dict=True),
                    ECAlgorithm.to_jwk(ec_key.public_key(), as_dict=True),
                ]
            },
        )
        assertion = jwt.encode(
            {
                "iss": client.id,
                "sub": "user_1",
                "aud": f"{ISSUER}/oauth/token",
                "exp": utc_now() + timedelta(minutes=5),
            },
            ec_key,
            algorithm="ES256",
        )

        response = await _run_grant(
            server, client, {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        )

        assert isinstance(response, TokenResponse)
