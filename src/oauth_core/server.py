# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Composition of the authorization server from settings and services.

The builder is the only place where components are wired together. Missing
service methods are reported here, once, as ``ConfigurationError`` rather
than at request time.
"""

from collections.abc import Mapping
from typing import Any, cast

from attrs import frozen
from beartype import beartype

from .bearer import BearerTokenAuthorization
from .client_authentication import ClientAuthenticationHandler
from .core.config import DEVICE_CODE_GRANT, JWT_BEARER_GRANT, Settings
from .core.logging_utils import get_logger
from .endpoints import (
    DeviceAuthorizationEndpoint,
    Endpoint,
    IntrospectionEndpoint,
    RegistrationEndpoint,
    RevocationEndpoint,
    TokenEndpoint,
    UserinfoEndpoint,
)
from .exceptions import ConfigurationError
from .grant_types import (
    AuthorizationCodeGrant,
    ClientCredentialsGrant,
    DeviceCodeGrant,
    GrantType,
    JwtBearerGrant,
    PasswordGrant,
    RefreshTokenGrant,
)
from .http import HttpRequest, HttpResponse
from .id_token import IdTokenHandler
from .registration.metadata import ClientMetadataValidator
from .registration.validators import (
    DeleteRegistrationRequestValidator,
    GetRegistrationRequestValidator,
    PostRegistrationRequestValidator,
    PutRegistrationRequestValidator,
)
from .scopes import ScopeHandler
from .services.interfaces import (
    AccessTokenService,
    AuthorizationCodeService,
    ClientAssertionService,
    ClientService,
    DeviceCodeService,
    RefreshTokenService,
    UserService,
    UserinfoService,
    require_methods,
)
from .signing import ServerSigningKeys

logger = get_logger(__name__)


@frozen
class AuthorizationServer:
    """Immutable, fully wired authorization server."""

    settings: Settings
    client_authentication: ClientAuthenticationHandler
    grant_types: Mapping[str, GrantType[Any]]
    endpoints: Mapping[str, Endpoint]

    @beartype
    def endpoint_for(self, path: str) -> Endpoint | None:
        """Find the endpoint mounted at ``path``."""
        for endpoint in self.endpoints.values():
            if endpoint.path == path:
                return endpoint
        return None

    @beartype
    async def handle(self, request: HttpRequest) -> HttpResponse:
        """Route ``request`` to its endpoint.

        Raises:
            LookupError: if no endpoint is mounted at the request path.
        """
        endpoint = self.endpoint_for(request.path)
        if endpoint is None:
            raise LookupError(f"No endpoint mounted at {request.path}")
        return await endpoint.handle(request)


class AuthorizationServerBuilder:
    """Collects settings and services, then builds an AuthorizationServer."""

    def __init__(self, settings: Settings) -> None:
        """Start a builder for ``settings``."""
        self._settings = settings
        self._client_service: ClientService | None = None
        self._access_token_service: AccessTokenService | None = None
        self._refresh_token_service: RefreshTokenService | None = None
        self._authorization_code_service: AuthorizationCodeService | None = None
        self._device_code_service: DeviceCodeService | None = None
        self._user_service: UserService | None = None
        self._client_assertion_service: ClientAssertionService | None = None
        self._signing_keys: ServerSigningKeys | None = None

    def with_client_service(self, service: ClientService) -> "AuthorizationServerBuilder":
        self._client_service = service
        return self

    def with_access_token_service(
        self, service: AccessTokenService
    ) -> "AuthorizationServerBuilder":
        self._access_token_service = service
        return self

    def with_refresh_token_service(
        self, service: RefreshTokenService
    ) -> "AuthorizationServerBuilder":
        self._refresh_token_service = service
        return self

    def with_authorization_code_service(
        self, service: AuthorizationCodeService
    ) -> "AuthorizationServerBuilder":
        self._authorization_code_service = service
        return self

    def with_device_code_service(self, service: DeviceCodeService) -> "AuthorizationServerBuilder":
        self._device_code_service = service
        return self

    def with_user_service(self, service: UserService) -> "AuthorizationServerBuilder":
        self._user_service = service
        return self

    def with_client_assertion_service(
        self, service: ClientAssertionService
    ) -> "AuthorizationServerBuilder":
        self._client_assertion_service = service
        return self

    @beartype
    def with_signing_keys(self, jwks: dict[str, Any]) -> "AuthorizationServerBuilder":
        """Use the private JSON Web Key Set ``jwks`` to sign ID Tokens and userinfo."""
        self._signing_keys = ServerSigningKeys(jwks)
        return self

    def build(self) -> AuthorizationServer:
        """Wire every component.

        Raises:
            ConfigurationError: if a required service or method is missing.
        """
        settings = self._settings
        client_service = self._require(self._client_service, "ClientService")
        access_token_service = self._require(self._access_token_service, "AccessTokenService")

        require_methods(client_service, "ClientService", ["find_one"])
        require_methods(access_token_service, "AccessTokenService", ["create", "find_one", "revoke"])
        if self._refresh_token_service is not None:
            require_methods(
                self._refresh_token_service, "RefreshTokenService", ["create", "find_one", "revoke"]
            )

        client_authentication = ClientAuthenticationHandler(
            settings, client_service, self._client_assertion_service
        )
        scope_handler = ScopeHandler(settings)
        userinfo_service = self._userinfo_service()
        id_token_handler = None
        if userinfo_service is not None and self._signing_keys is not None:
            id_token_handler = IdTokenHandler(settings, self._signing_keys, userinfo_service)
        grant_types = self._build_grant_types(
            client_authentication, access_token_service, scope_handler, id_token_handler
        )

        bearer = BearerTokenAuthorization(access_token_service)
        metadata_validator = ClientMetadataValidator(settings, scope_handler)
        endpoints: dict[str, Endpoint] = {
            "token": TokenEndpoint(grant_types),
            "registration": RegistrationEndpoint(
                settings,
                client_service,
                access_token_service,
                PostRegistrationRequestValidator(
                    bearer, access_token_service, client_service, metadata_validator
                ),
                GetRegistrationRequestValidator(bearer, access_token_service, client_service),
                PutRegistrationRequestValidator(
                    bearer, access_token_service, client_service, metadata_validator
                ),
                DeleteRegistrationRequestValidator(bearer, access_token_service, client_service),
            ),
            "revocation": RevocationEndpoint(
                client_authentication,
                access_token_service,
                self._refresh_token_service,
                include_refresh_tokens=settings.enable_refresh_token_revocation,
            ),
            "introspection": IntrospectionEndpoint(
                settings, client_authentication, access_token_service, self._refresh_token_service
            ),
        }

        if DEVICE_CODE_GRANT in settings.grant_types:
            device_code_service = self._require(self._device_code_service, "DeviceCodeService")
            require_methods(device_code_service, "DeviceCodeService", ["create"])
            endpoints["device_authorization"] = DeviceAuthorizationEndpoint(
                settings, client_authentication, device_code_service, scope_handler
            )

        if userinfo_service is not None:
            endpoints["userinfo"] = UserinfoEndpoint(
                settings, bearer, userinfo_service, self._signing_keys
            )

        logger.info(
            "Authorization server built with grants: %s", ", ".join(sorted(grant_types))
        )
        return AuthorizationServer(
            settings=settings,
            client_authentication=client_authentication,
            grant_types=grant_types,
            endpoints=endpoints,
        )

    def _build_grant_types(
        self,
        client_authentication: ClientAuthenticationHandler,
        access_token_service: AccessTokenService,
        scope_handler: ScopeHandler,
        id_token_handler: IdTokenHandler | None,
    ) -> dict[str, GrantType[Any]]:
        settings = self._settings
        refresh_tokens = self._refresh_token_service
        grants: dict[str, GrantType[Any]] = {}

        for name in settings.grant_types:
            if name == "authorization_code":
                grants[name] = AuthorizationCodeGrant(
                    settings,
                    client_authentication,
                    access_token_service,
                    self._require(self._authorization_code_service, "AuthorizationCodeService"),
                    refresh_tokens,
                    id_token_handler,
                )
            elif name == "client_credentials":
                grants[name] = ClientCredentialsGrant(
                    settings, client_authentication, access_token_service, scope_handler
                )
            elif name == "password":
                grants[name] = PasswordGrant(
                    settings,
                    client_authentication,
                    access_token_service,
                    self._require(self._user_service, "UserService"),
                    scope_handler,
                    refresh_tokens,
                )
            elif name == "refresh_token":
                grants[name] = RefreshTokenGrant(
                    settings,
                    client_authentication,
                    access_token_service,
                    self._require(refresh_tokens, "RefreshTokenService"),
                    scope_handler,
                )
            elif name == DEVICE_CODE_GRANT:
                grants[name] = DeviceCodeGrant(
                    settings,
                    client_authentication,
                    access_token_service,
                    self._require(self._device_code_service, "DeviceCodeService"),
                    refresh_tokens,
                )
            elif name == JWT_BEARER_GRANT:
                grants[name] = JwtBearerGrant(
                    settings,
                    client_authentication,
                    access_token_service,
                    self._require(self._user_service, "UserService"),
                    scope_handler,
                )
            else:
                raise ConfigurationError(f'Unsupported Grant Type "{name}".')
        return grants

    def _userinfo_service(self) -> UserinfoService | None:
        """The user service, when OpenID Connect is enabled.

        Raises:
            ConfigurationError: if it cannot describe End-Users.
        """
        if self._user_service is None or "openid" not in self._settings.scopes:
            return None
        require_methods(self._user_service, "UserService", ["get_userinfo"])
        return cast(UserinfoService, self._user_service)

    @staticmethod
    def _require(service: Any, interface: str) -> Any:
        if service is None:
            raise ConfigurationError(f'Missing required service "{interface}".')
        return service
