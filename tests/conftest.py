"""Test configuration and fixtures.

Every fixture builds on the in-memory reference services so that tests run
the real engine end to end without external storage.
"""

from collections.abc import Callable, Generator
from datetime import timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from oauth_core.core.config import Settings
from oauth_core.core.security import generate_signing_keys
from oauth_core.main import InMemoryBackend, create_app
from oauth_core.models import Client, Consent, User, utc_now
from oauth_core.server import AuthorizationServer

from helpers import CONFIDENTIAL_SECRET, ISSUER


@pytest.fixture
def settings() -> Settings:
    """Settings with a fixed issuer and every grant enabled."""
    return Settings(issuer=ISSUER)


@pytest.fixture(scope="session")
def signing_keys() -> dict[str, Any]:
    """Private RS256 key set of the server, generated once per run."""
    return generate_signing_keys(kid="server-key-1")


@pytest.fixture
def backend(settings: Settings, signing_keys: dict[str, Any]) -> InMemoryBackend:
    """Empty in-memory stores."""
    return InMemoryBackend.create(settings, signing_keys)


@pytest.fixture
def server(backend: InMemoryBackend, settings: Settings) -> AuthorizationServer:
    """Fully wired authorization server."""
    return backend.build_server(settings)


@pytest.fixture
def make_client(backend: InMemoryBackend) -> Callable[..., Client]:
    """Factory that stores a client directly in the registry."""

    def _make(**overrides: Any) -> Client:
        data: dict[str, Any] = {
            "id": "client_id",
            "secret": CONFIDENTIAL_SECRET,
            "redirect_uris": ["https://client.example.com/callback"],
            "grant_types": [
                "authorization_code",
                "client_credentials",
                "password",
                "refresh_token",
                "urn:ietf:params:oauth:grant-type:device_code",
                "urn:ietf:params:oauth:grant-type:jwt-bearer",
            ],
            "scopes": ["openid", "profile", "email"],
            "authentication_method": "client_secret_basic",
        }
        data.update(overrides)
        return backend.clients.save(Client(**data))

    return _make


@pytest.fixture
def confidential_client(make_client: Callable[..., Client]) -> Client:
    """Client authenticating with HTTP Basic."""
    return make_client()


@pytest.fixture
def public_client(make_client: Callable[..., Client]) -> Client:
    """Client authenticating with ``client_id`` only."""
    return make_client(id="public_client", secret=None, authentication_method="none")


@pytest.fixture
def user(backend: InMemoryBackend) -> User:
    """End-User with a known password."""
    return backend.users.add_user("alice", "correct horse battery staple", user_id="user_1")


@pytest.fixture
def consent(confidential_client: Client, user: User) -> Consent:
    """Consent of ``user`` to ``confidential_client`` for openid and profile."""
    return Consent(
        id="consent_1",
        scopes=["openid", "profile"],
        client=confidential_client,
        user=user,
        expires_at=utc_now() + timedelta(days=1),
    )


@pytest.fixture
def app(server: AuthorizationServer) -> Any:
    """FastAPI application around the test server."""
    return create_app(server)


@pytest.fixture
def http_client(app: Any) -> Generator[TestClient, None, None]:
    """Synchronous HTTP client for the FastAPI application."""
    with TestClient(app) as client:
        yield client
