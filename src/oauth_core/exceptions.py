# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth 2.0 error taxonomy.

Each subclass pins the ``error`` code and HTTP status defined by RFC 6749,
RFC 6750, RFC 7591 and RFC 8628. The description is human readable and
stable so that clients and tests can rely on it.
"""

from typing import Any, ClassVar

from beartype import beartype


class ConfigurationError(TypeError):
    """Raised while composing the server when a collaborator is unusable."""


class OAuth2Error(Exception):
    """OAuth2 specific errors."""

    error_code: ClassVar[str] = "server_error"
    default_status_code: ClassVar[int] = 400

    def __init__(
        self,
        error_description: str | None = None,
        error_uri: str | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize OAuth2 error."""
        self.error = self.error_code
        self.error_description = error_description
        self.error_uri = error_uri
        self.status_code = status_code or self.default_status_code
        self.headers: dict[str, str] = dict(headers or {})
        super().__init__(error_description or self.error)

    @beartype
    def to_dict(self) -> dict[str, Any]:
        """Convert to OAuth2 error response."""
        response: dict[str, Any] = {"error": self.error}
        if self.error_description:
            response["error_description"] = self.error_description
        if self.error_uri:
            response["error_uri"] = self.error_uri
        return response

    def __repr__(self) -> str:
        return f"{type(self).__name__}(error={self.error!r}, description={self.error_description!r})"


class InvalidRequest(OAuth2Error):
    """The request is missing a parameter or is otherwise malformed."""

    error_code = "invalid_request"


class InvalidClient(OAuth2Error):
    """Client authentication failed."""

    error_code = "invalid_client"
    default_status_code = 401


class InvalidGrant(OAuth2Error):
    """The grant, code or token is invalid, expired, revoked or mismatched."""

    error_code = "invalid_grant"


class InvalidScope(OAuth2Error):
    """The requested scope is invalid, unknown or exceeds what was granted."""

    error_code = "invalid_scope"


class UnauthorizedClient(OAuth2Error):
    """The client is not allowed to use the requested grant."""

    error_code = "unauthorized_client"


class UnsupportedGrantType(OAuth2Error):
    error_code = "unsupported_grant_type"


class UnsupportedTokenType(OAuth2Error):
    error_code = "unsupported_token_type"


class AccessDenied(OAuth2Error):
    error_code = "access_denied"


class AuthorizationPending(OAuth2Error):
    error_code = "authorization_pending"


class SlowDown(OAuth2Error):
    error_code = "slow_down"


class ExpiredToken(OAuth2Error):
    error_code = "expired_token"


class InvalidToken(OAuth2Error):
    """The bearer token is unknown, expired or revoked."""

    error_code = "invalid_token"
    default_status_code = 401

    def __init__(
        self,
        error_description: str | None = None,
        error_uri: str | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Attach the Bearer challenge required by RFC 6750."""
        challenge = {"WWW-Authenticate": 'Bearer error="invalid_token"'}
        challenge.update(headers or {})
        super().__init__(error_description, error_uri, status_code, challenge)


class InsufficientScope(OAuth2Error):
    """The token lacks the scope required by the operation."""

    error_code = "insufficient_scope"
    default_status_code = 403


class InvalidRedirectUri(OAuth2Error):
    error_code = "invalid_redirect_uri"


class InvalidClientMetadata(OAuth2Error):
    error_code = "invalid_client_metadata"


class ServerError(OAuth2Error):
    """Unexpected failure; the cause is kept for logging only."""

    error_code = "server_error"
    default_status_code = 500


__all__ = [
    "ConfigurationError",
    "OAuth2Error",
    "InvalidRequest",
    "InvalidClient",
    "InvalidGrant",
    "InvalidScope",
    "UnauthorizedClient",
    "UnsupportedGrantType",
    "UnsupportedTokenType",
    "AccessDenied",
    "AuthorizationPending",
    "SlowDown",
    "ExpiredToken",
    "InvalidToken",
    "InsufficientScope",
    "InvalidRedirectUri",
    "InvalidClientMetadata",
    "ServerError",
]
