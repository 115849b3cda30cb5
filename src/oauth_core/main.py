# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuthCore - FastAPI application backed by the in-memory reference services."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from attrs import frozen
from beartype import beartype
from fastapi import FastAPI

from .api import router as oauth2_router
from .core.config import Settings, get_settings
from .core.logging_utils import get_logger
from .core.security import generate_signing_keys
from .server import AuthorizationServer, AuthorizationServerBuilder
from .services.memory import (
    InMemoryAccessTokenService,
    InMemoryAuthorizationCodeService,
    InMemoryClientAssertionService,
    InMemoryClientService,
    InMemoryDeviceCodeService,
    InMemoryRefreshTokenService,
    InMemoryUserService,
)

logger = get_logger(__name__)


@frozen
class InMemoryBackend:
    """The reference services, kept together so callers can seed them."""

    clients: InMemoryClientService
    access_tokens: InMemoryAccessTokenService
    refresh_tokens: InMemoryRefreshTokenService
    authorization_codes: InMemoryAuthorizationCodeService
    device_codes: InMemoryDeviceCodeService
    users: InMemoryUserService
    client_assertions: InMemoryClientAssertionService
    signing_keys: dict[str, Any]

    @classmethod
    def create(
        cls, settings: Settings, signing_keys: dict[str, Any] | None = None
    ) -> "InMemoryBackend":
        """Create empty stores, generating a signing key unless one is given."""
        return cls(
            clients=InMemoryClientService(),
            access_tokens=InMemoryAccessTokenService(settings),
            refresh_tokens=InMemoryRefreshTokenService(settings),
            authorization_codes=InMemoryAuthorizationCodeService(),
            device_codes=InMemoryDeviceCodeService(settings),
            users=InMemoryUserService(),
            client_assertions=InMemoryClientAssertionService(),
            signing_keys=signing_keys or generate_signing_keys(),
        )

    def build_server(self, settings: Settings) -> AuthorizationServer:
        """Wire an authorization server on top of these stores."""
        return (
            AuthorizationServerBuilder(settings)
            .with_client_service(self.clients)
            .with_access_token_service(self.access_tokens)
            .with_refresh_token_service(self.refresh_tokens)
            .with_authorization_code_service(self.authorization_codes)
            .with_device_code_service(self.device_codes)
            .with_user_service(self.users)
            .with_client_assertion_service(self.client_assertions)
            .with_signing_keys(self.signing_keys)
            .build()
        )


@beartype
def create_app(server: AuthorizationServer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without ``server`` an in-memory backend is created and an Initial Access
    Token for client registration is issued at startup.
    """
    settings = server.settings if server is not None else get_settings()
    get_logger(level=settings.log_level.upper())

    backend: InMemoryBackend | None = None
    if server is None:
        backend = InMemoryBackend.create(settings)
        server = backend.build_server(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting OAuthCore with issuer %s", settings.issuer)
        if backend is not None:
            initial_token = await backend.access_tokens.create_initial_access_token(
                ["client:manage"]
            )
            app.state.initial_access_token = initial_token.handle
            logger.info("Initial Access Token available at app.state.initial_access_token")
        yield
        logger.info("Shutting down OAuthCore")

    app = FastAPI(
        title="OAuthCore",
        description="OAuth 2.0 / OpenID Connect authorization server engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.authorization_server = server
    app.include_router(oauth2_router)
    return app


@beartype
def main() -> None:
    """Run the development server."""
    uvicorn.run(create_app(), host="127.0.0.1", port=8000, log_level="info")


if __name__ == "__main__":
    main()
