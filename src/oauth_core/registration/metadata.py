# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client metadata validation for Dynamic Client Registration.

Implements the checks of RFC 7591 §2 and OpenID Connect Dynamic Client
Registration 1.0 §2 that are shared by client creation (POST) and client
update (PUT). Checks run in a fixed order so that a request with several
problems always reports the same one first.
"""

from typing import Any
from urllib.parse import SplitResult, urlsplit

import jwt
from beartype import beartype

from ..core.config import HMAC_ALGORITHMS, Settings
from ..core.logging_utils import get_logger
from ..exceptions import InvalidClientMetadata, InvalidRedirectUri, InvalidScope
from ..scopes import ScopeHandler, split_scope

logger = get_logger(__name__)

AUTHORIZATION_CODE_RESPONSE_TYPES = ["code"]
IMPLICIT_RESPONSE_TYPES = ["id_token", "id_token token", "token"]
HYBRID_RESPONSE_TYPES = ["code id_token", "code id_token token", "code token"]
HYBRID_GRANT_TYPES = ["authorization_code", "implicit"]

JWT_AUTHENTICATION_METHODS = ("client_secret_jwt", "private_key_jwt")
DEFAULT_CONTENT_ENCRYPTION = "A128CBC-HS256"

LOCALHOST_NAMES = ("localhost", "127.0.0.1")

_NATIVE_HTTP_MESSAGE = (
    "The Authorization Server disallows using the http or https protocol"
    ' - except for localhost - for a "native" application.'
)


def _quoted_list(values: list[str]) -> str:
    return '["' + '", "'.join(values) + '"]'


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _parse_url(value: str) -> SplitResult:
    """Parse an absolute URL.

    Raises:
        ValueError: if ``value`` is not an absolute URL.
    """
    parsed = urlsplit(value)
    if not parsed.scheme or (parsed.scheme in ("http", "https") and not parsed.hostname):
        raise ValueError(f"Not an absolute URL: {value}")
    return parsed


def _uses_http(url: SplitResult) -> bool:
    return url.scheme in ("http", "https")


class ClientMetadataValidator:
    """Validates registration metadata against the server capabilities.

    ``validate`` returns a mapping keyed by :class:`~oauth_core.models.Client`
    field names with defaults applied, ready to build or replace a client.
    """

    def __init__(self, settings: Settings, scope_handler: ScopeHandler) -> None:
        """Initialize metadata validator."""
        self._settings = settings
        self._scope_handler = scope_handler

    @beartype
    def validate(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Validate the metadata of a POST or PUT registration request.

        Raises:
            InvalidClientMetadata: on the first invalid member.
            InvalidRedirectUri: on the first invalid redirect URI.
        """
        redirect_uris = self._get_redirect_uris(parameters)
        response_types = self._get_response_types(parameters)
        grant_types = self._get_grant_types(parameters)
        self._check_response_types_and_grant_types(response_types, grant_types)

        application_type = self._get_application_type(parameters)
        self._check_redirect_uris_policy(application_type, redirect_uris)

        metadata: dict[str, Any] = {
            "redirect_uris": redirect_uris,
            "response_types": response_types,
            "grant_types": grant_types,
            "application_type": application_type,
            "name": self._get_optional_string(parameters, "client_name"),
            "scopes": self._get_scopes(parameters),
            "contacts": self._get_contacts(parameters),
            "logo_uri": self._get_uri(parameters, "logo_uri", "Invalid Logo URI."),
            "client_uri": self._get_uri(parameters, "client_uri", "Invalid Client URI."),
            "policy_uri": self._get_uri(parameters, "policy_uri", "Invalid Policy URI."),
            "tos_uri": self._get_uri(parameters, "tos_uri", "Invalid Terms of Service URI."),
        }

        if "jwks_uri" in parameters and "jwks" in parameters:
            raise InvalidClientMetadata(
                'Only one of the parameters "jwks_uri" and "jwks" must be provided.'
            )
        metadata["jwks_uri"] = self._get_uri(
            parameters, "jwks_uri", "Invalid JSON Web Key Set URI."
        )
        metadata["jwks"] = self._get_jwks(parameters)

        if parameters.get("subject_type") == "pairwise" and "sector_identifier_uri" not in parameters:
            raise InvalidClientMetadata(
                'The Subject Type "pairwise" requires a Sector Identifier URI.'
            )
        metadata["subject_type"] = self._get_supported(
            parameters, "subject_type", self._settings.subject_types, default="public"
        )
        metadata["sector_identifier_uri"] = self._get_sector_identifier_uri(parameters)

        metadata.update(self._get_response_algorithms(parameters))

        authentication_method = self._get_supported(
            parameters,
            "token_endpoint_auth_method",
            self._settings.client_authentication_methods,
            default="client_secret_basic",
        )
        authentication_signing_algorithm = self._get_supported(
            parameters,
            "token_endpoint_auth_signing_alg",
            self._settings.client_authentication_signature_algorithms,
        )
        self._check_authentication_signing_algorithm(
            parameters, authentication_method, authentication_signing_algorithm
        )
        metadata["authentication_method"] = authentication_method
        metadata["authentication_signing_algorithm"] = authentication_signing_algorithm

        metadata["default_max_age"] = self._get_default_max_age(parameters)
        metadata["require_auth_time"] = self._get_boolean(parameters, "require_auth_time")
        metadata["default_acr_values"] = self._get_default_acr_values(parameters)
        metadata["initiate_login_uri"] = self._get_uri(
            parameters, "initiate_login_uri", "Invalid Initiate Login URI."
        )

        post_logout_redirect_uris = self._get_post_logout_redirect_uris(parameters)
        self._check_uri_policy(application_type, post_logout_redirect_uris, "Post Logout Redirect URI")
        metadata["post_logout_redirect_uris"] = post_logout_redirect_uris

        if "backchannel_logout_session_required" in parameters and "backchannel_logout_uri" not in parameters:
            raise InvalidClientMetadata(
                'The parameter "backchannel_logout_session_required" must be presented together '
                'with the parameter "backchannel_logout_uri".'
            )
        backchannel_logout_uri = self._get_backchannel_logout_uri(parameters)
        metadata["backchannel_logout_uri"] = backchannel_logout_uri
        metadata["backchannel_logout_session_required"] = self._get_backchannel_logout_session_required(
            parameters
        )
        if backchannel_logout_uri is not None:
            self._check_uri_policy(application_type, [backchannel_logout_uri], "Back-Channel Logout URI")

        metadata["software_id"] = self._get_optional_string(parameters, "software_id")
        metadata["software_version"] = self._get_optional_string(parameters, "software_version")
        return metadata

    def _get_redirect_uris(self, parameters: dict[str, Any]) -> list[str]:
        redirect_uris = parameters.get("redirect_uris")
        if not _is_string_list(redirect_uris):
            raise InvalidClientMetadata('Invalid parameter "redirect_uris".')
        if not redirect_uris:
            raise InvalidRedirectUri("At least one Redirect URI is required.")

        for redirect_uri in redirect_uris:
            try:
                url = _parse_url(redirect_uri)
            except ValueError as e:
                raise InvalidRedirectUri(f'Invalid Redirect URI "{redirect_uri}".') from e
            if url.fragment:
                raise InvalidRedirectUri(
                    f'The Redirect URI "{redirect_uri}" MUST NOT have a fragment component.'
                )
        return list(redirect_uris)

    def _get_response_types(self, parameters: dict[str, Any]) -> list[str]:
        if "response_types" not in parameters:
            return ["code"]

        response_types = parameters["response_types"]
        if not _is_string_list(response_types):
            raise InvalidClientMetadata('Invalid parameter "response_types".')

        for response_type in response_types:
            if response_type not in self._settings.response_types:
                raise InvalidClientMetadata(f'Unsupported response_type "{response_type}".')
        return list(response_types)

    def _get_grant_types(self, parameters: dict[str, Any]) -> list[str]:
        if "grant_types" not in parameters:
            return ["authorization_code"]

        grant_types = parameters["grant_types"]
        if not _is_string_list(grant_types):
            raise InvalidClientMetadata('Invalid parameter "grant_types".')

        for grant_type in grant_types:
            # "implicit" is never a token endpoint grant, but registers the front channel flows.
            if grant_type != "implicit" and grant_type not in self._settings.grant_types:
                raise InvalidClientMetadata(f'Unsupported grant_type "{grant_type}".')
        return list(grant_types)

    @staticmethod
    def _check_response_types_and_grant_types(
        response_types: list[str], grant_types: list[str]
    ) -> None:
        def has_response_type(candidates: list[str]) -> bool:
            return any(response_type in response_types for response_type in candidates)

        if has_response_type(AUTHORIZATION_CODE_RESPONSE_TYPES) and "authorization_code" not in grant_types:
            raise InvalidClientMetadata(
                'The Response Type "code" requires the Grant Type "authorization_code".'
            )

        if has_response_type(IMPLICIT_RESPONSE_TYPES) and "implicit" not in grant_types:
            raise InvalidClientMetadata(
                f"The Response Types {_quoted_list(IMPLICIT_RESPONSE_TYPES)} "
                'require the Grant Type "implicit".'
            )

        if has_response_type(HYBRID_RESPONSE_TYPES) and not all(
            grant_type in grant_types for grant_type in HYBRID_GRANT_TYPES
        ):
            raise InvalidClientMetadata(
                f"The Response Types {_quoted_list(HYBRID_RESPONSE_TYPES)} "
                f"require the Grant Types {_quoted_list(HYBRID_GRANT_TYPES)}."
            )

        if (
            "authorization_code" in grant_types
            and not has_response_type(AUTHORIZATION_CODE_RESPONSE_TYPES)
            and not has_response_type(HYBRID_RESPONSE_TYPES)
        ):
            code_response_types = AUTHORIZATION_CODE_RESPONSE_TYPES + HYBRID_RESPONSE_TYPES
            raise InvalidClientMetadata(
                'The Grant Type "authorization_code" requires at lease one of the '
                f"Response Types {_quoted_list(code_response_types)}."
            )

        if (
            "implicit" in grant_types
            and not has_response_type(HYBRID_RESPONSE_TYPES)
            and not has_response_type(IMPLICIT_RESPONSE_TYPES)
        ):
            implicit_response_types = HYBRID_RESPONSE_TYPES + IMPLICIT_RESPONSE_TYPES
            raise InvalidClientMetadata(
                'The Grant Type "implicit" requires at lease one of the '
                f"Response Types {_quoted_list(implicit_response_types)}."
            )

    @staticmethod
    def _get_application_type(parameters: dict[str, Any]) -> str:
        if "application_type" not in parameters:
            return "web"

        application_type = parameters["application_type"]
        if not isinstance(application_type, str):
            raise InvalidClientMetadata('Invalid parameter "application_type".')
        if application_type not in ("native", "web"):
            raise InvalidClientMetadata(f'Unsupported application_type "{application_type}".')
        return application_type

    @staticmethod
    def _check_redirect_uris_policy(application_type: str, redirect_uris: list[str]) -> None:
        for redirect_uri in redirect_uris:
            url = _parse_url(redirect_uri)
            if application_type == "native":
                if _uses_http(url) and url.hostname != "localhost":
                    raise InvalidRedirectUri(_NATIVE_HTTP_MESSAGE)
                continue

            if url.scheme != "https":
                raise InvalidRedirectUri(
                    f'The Redirect URI "{redirect_uri}" does not use the https protocol.'
                )
            if url.hostname in LOCALHOST_NAMES:
                raise InvalidRedirectUri(
                    "The Authorization Server disallows using localhost "
                    'as a Redirect URI for a "web" application.'
                )

    @staticmethod
    def _check_uri_policy(application_type: str, uris: list[str] | None, label: str) -> None:
        """Apply the redirect URI transport rules to the logout URIs."""
        for uri in uris or []:
            url = _parse_url(uri)
            if application_type == "native":
                if _uses_http(url) and url.hostname != "localhost":
                    raise InvalidClientMetadata(_NATIVE_HTTP_MESSAGE)
                continue

            if url.scheme != "https":
                raise InvalidClientMetadata(f'The {label} "{uri}" does not use the https protocol.')
            if url.hostname in LOCALHOST_NAMES:
                raise InvalidClientMetadata(
                    "The Authorization Server disallows using localhost "
                    f'as a {label} for a "web" application.'
                )

    @staticmethod
    def _get_optional_string(parameters: dict[str, Any], name: str) -> str | None:
        value = parameters.get(name)
        if name in parameters and not isinstance(value, str):
            raise InvalidClientMetadata(f'Invalid parameter "{name}".')
        return value

    @staticmethod
    def _get_boolean(parameters: dict[str, Any], name: str) -> bool:
        value = parameters.get(name, False)
        if not isinstance(value, bool):
            raise InvalidClientMetadata(f'Invalid parameter "{name}".')
        return value

    def _get_uri(self, parameters: dict[str, Any], name: str, message: str) -> str | None:
        value = self._get_optional_string(parameters, name)
        if value is None:
            return None
        try:
            _parse_url(value)
        except ValueError as e:
            raise InvalidClientMetadata(message) from e
        return value

    def _get_scopes(self, parameters: dict[str, Any]) -> list[str]:
        scope = parameters.get("scope")
        if not isinstance(scope, str):
            raise InvalidClientMetadata('Invalid parameter "scope".')

        try:
            self._scope_handler.check_requested_scope(scope)
        except InvalidScope as e:
            raise InvalidClientMetadata(e.error_description) from e
        return split_scope(scope)

    @staticmethod
    def _get_contacts(parameters: dict[str, Any]) -> list[str] | None:
        if "contacts" not in parameters:
            return None
        contacts = parameters["contacts"]
        if not _is_string_list(contacts):
            raise InvalidClientMetadata('Invalid parameter "contacts".')
        return list(contacts)

    @staticmethod
    def _get_jwks(parameters: dict[str, Any]) -> dict[str, Any] | None:
        if "jwks" not in parameters:
            return None

        jwks = parameters["jwks"]
        if not isinstance(jwks, dict):
            raise InvalidClientMetadata('Invalid parameter "jwks".')

        try:
            jwt.PyJWKSet.from_dict(jwks)
        except (jwt.PyJWKSetError, jwt.PyJWKError, KeyError, TypeError, ValueError) as e:
            raise InvalidClientMetadata("Invalid JSON Web Key Set.") from e
        return jwks

    def _get_supported(
        self,
        parameters: dict[str, Any],
        name: str,
        supported: list[str],
        default: str | None = None,
    ) -> str | None:
        value = self._get_optional_string(parameters, name)
        if value is None:
            return default
        if value not in supported:
            raise InvalidClientMetadata(f'Unsupported {name} "{value}".')
        return value

    def _get_sector_identifier_uri(self, parameters: dict[str, Any]) -> str | None:
        value = self._get_uri(parameters, "sector_identifier_uri", "Invalid Sector Identifier URI.")
        if value is not None and urlsplit(value).scheme != "https":
            raise InvalidClientMetadata("The Sector Identifier URI does not use the https protocol.")
        return value

    def _get_response_algorithms(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Validate the ID Token, UserInfo and Authorization Response JOSE algorithms."""
        settings = self._settings
        algorithms: dict[str, Any] = {
            "id_token_signed_response_algorithm": self._get_supported(
                parameters,
                "id_token_signed_response_alg",
                settings.id_token_signature_algorithms,
                default="RS256",
            ),
        }
        algorithms.update(
            self._get_encryption_algorithms(
                parameters,
                "id_token",
                settings.id_token_key_wrap_algorithms,
                settings.id_token_content_encryption_algorithms,
                signed_required=False,
            )
        )

        algorithms["userinfo_signed_response_algorithm"] = self._get_supported(
            parameters, "userinfo_signed_response_alg", settings.userinfo_signature_algorithms
        )
        algorithms.update(
            self._get_encryption_algorithms(
                parameters,
                "userinfo",
                settings.userinfo_key_wrap_algorithms,
                settings.userinfo_content_encryption_algorithms,
                signed_required=True,
            )
        )

        algorithms["authorization_signed_response_algorithm"] = self._get_supported(
            parameters,
            "authorization_signed_response_alg",
            settings.authorization_signature_algorithms,
        )
        algorithms.update(
            self._get_encryption_algorithms(
                parameters,
                "authorization",
                settings.authorization_key_wrap_algorithms,
                settings.authorization_content_encryption_algorithms,
                signed_required=True,
            )
        )
        return algorithms

    def _get_encryption_algorithms(
        self,
        parameters: dict[str, Any],
        prefix: str,
        key_wrap_algorithms: list[str],
        content_encryption_algorithms: list[str],
        *,
        signed_required: bool,
    ) -> dict[str, str | None]:
        signed = f"{prefix}_signed_response_alg"
        alg = f"{prefix}_encrypted_response_alg"
        enc = f"{prefix}_encrypted_response_enc"

        self._get_optional_string(parameters, alg)
        if signed_required and alg in parameters and signed not in parameters:
            raise InvalidClientMetadata(
                f'The parameter "{alg}" must be presented together with the parameter "{signed}".'
            )
        key_wrap = self._get_supported(parameters, alg, key_wrap_algorithms)

        self._get_optional_string(parameters, enc)
        if enc in parameters and alg not in parameters:
            raise InvalidClientMetadata(
                f'The parameter "{enc}" must be presented together with the parameter "{alg}".'
            )
        content_encryption = self._get_supported(parameters, enc, content_encryption_algorithms)
        if content_encryption is None and key_wrap is not None:
            content_encryption = DEFAULT_CONTENT_ENCRYPTION

        return {
            f"{prefix}_encrypted_response_key_wrap": key_wrap,
            f"{prefix}_encrypted_response_content_encryption": content_encryption,
        }

    @staticmethod
    def _check_authentication_signing_algorithm(
        parameters: dict[str, Any], method: str | None, algorithm: str | None
    ) -> None:
        if method not in JWT_AUTHENTICATION_METHODS:
            if algorithm is not None:
                raise InvalidClientMetadata(
                    f'The Client Authentication Method "{method}" '
                    "does not require a Client Authentication Signing Algorithm."
                )
            return

        if algorithm is None:
            raise InvalidClientMetadata(
                'Missing required parameter "token_endpoint_auth_signing_alg" '
                f'for Client Authentication Method "{method}".'
            )

        if "jwks" not in parameters and "jwks_uri" not in parameters:
            raise InvalidClientMetadata(
                'One of the parameters "jwks_uri" or "jwks" must be provided '
                f'for Client Authentication Method "{method}".'
            )

        is_hmac = algorithm in HMAC_ALGORITHMS
        if is_hmac != (method == "client_secret_jwt"):
            raise InvalidClientMetadata(
                f'Invalid JSON Web Signature Algorithm "{algorithm}" '
                f'for Client Authentication Method "{method}".'
            )

    @staticmethod
    def _get_default_max_age(parameters: dict[str, Any]) -> int | None:
        if "default_max_age" not in parameters:
            return None

        value = parameters["default_max_age"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidClientMetadata('Invalid parameter "default_max_age".')
        if not float(value).is_integer() or value <= 0:
            raise InvalidClientMetadata("The default max age must be a positive integer.")
        return int(value)

    def _get_default_acr_values(self, parameters: dict[str, Any]) -> list[str] | None:
        if "default_acr_values" not in parameters:
            return None

        values = parameters["default_acr_values"]
        if not _is_string_list(values):
            raise InvalidClientMetadata('Invalid parameter "default_acr_values".')
        for acr_value in values:
            if acr_value not in self._settings.acr_values:
                raise InvalidClientMetadata(f'Unsupported acr_value "{acr_value}".')
        return list(values)

    @staticmethod
    def _get_post_logout_redirect_uris(parameters: dict[str, Any]) -> list[str] | None:
        if "post_logout_redirect_uris" not in parameters:
            return None

        uris = parameters["post_logout_redirect_uris"]
        if not _is_string_list(uris):
            raise InvalidClientMetadata('Invalid parameter "post_logout_redirect_uris".')

        for uri in uris:
            try:
                url = _parse_url(uri)
            except ValueError as e:
                raise InvalidClientMetadata(f'Invalid Post Logout Redirect URI "{uri}".') from e
            if url.fragment:
                raise InvalidClientMetadata(
                    f'The Post Logout Redirect URI "{uri}" MUST NOT have a fragment component.'
                )
        return list(uris)

    def _get_backchannel_logout_uri(self, parameters: dict[str, Any]) -> str | None:
        uri = self._get_optional_string(parameters, "backchannel_logout_uri")
        if uri is None:
            return None

        if not self._settings.enable_back_channel_logout:
            raise InvalidClientMetadata(
                "The Authorization Server does not support Back-Channel Logout."
            )

        try:
            url = _parse_url(uri)
        except ValueError as e:
            raise InvalidClientMetadata(f'Invalid Back-Channel Logout URI "{uri}".') from e
        if url.fragment:
            raise InvalidClientMetadata(
                f'The Back-Channel Logout URI "{uri}" MUST NOT have a fragment component.'
            )
        return uri

    def _get_backchannel_logout_session_required(self, parameters: dict[str, Any]) -> bool:
        required = self._get_boolean(parameters, "backchannel_logout_session_required")
        if required and not self._settings.include_session_id_in_logout_token:
            raise InvalidClientMetadata(
                'The Authorization Server does not support passing the claim "sid" in the Logout Token.'
            )
        return required
