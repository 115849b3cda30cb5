"""Unit tests for the result types, error taxonomy and HTTP envelopes."""

import pytest

from oauth_core.core.result_types import Err, Ok, Result
from oauth_core.core.security import (
    constant_time_compare,
    generate_handle,
    generate_signing_keys,
)
from oauth_core.exceptions import (
    InsufficientScope,
    InvalidClient,
    InvalidGrant,
    InvalidToken,
    ServerError,
    SlowDown,
)
from oauth_core.http import DEFAULT_HEADERS, HttpRequest, HttpResponse


class TestResultTypes:
    """Tests for Ok and Err."""

    def test_ok(self) -> None:
        result = Result.ok(42)

        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 42
        assert result.map(lambda value: value + 1) == Ok(43)

    def test_err_unwrap_reraises_the_error(self) -> None:
        error = InvalidGrant("Expired Refresh Token.")
        result = Result.err(error)

        with pytest.raises(InvalidGrant) as exc_info:
            result.unwrap()

        assert exc_info.value is error
        assert result.unwrap_or("fallback") == "fallback"
        assert result.map(lambda value: value) is result

    def test_err_with_plain_value(self) -> None:
        with pytest.raises(ValueError, match="boom"):
            Err("boom").unwrap()


class TestErrorTaxonomy:
    """Tests for error codes and statuses."""

    @pytest.mark.parametrize(
        ("error", "code", "status"),
        [
            (InvalidGrant(), "invalid_grant", 400),
            (InvalidClient(), "invalid_client", 401),
            (InvalidToken(), "invalid_token", 401),
            (InsufficientScope(), "insufficient_scope", 403),
            (SlowDown(), "slow_down", 400),
            (ServerError(), "server_error", 500),
        ],
    )
    def test_codes_and_statuses(self, error: Exception, code: str, status: int) -> None:
        assert error.error == code  # type: ignore[attr-defined]
        assert error.status_code == status  # type: ignore[attr-defined]

    def test_to_dict_omits_absent_members(self) -> None:
        assert InvalidGrant().to_dict() == {"error": "invalid_grant"}
        assert InvalidGrant("Invalid Authorization Code.", "https://docs.example.com/errors").to_dict() == {
            "error": "invalid_grant",
            "error_description": "Invalid Authorization Code.",
            "error_uri": "https://docs.example.com/errors",
        }

    def test_status_override(self) -> None:
        assert InvalidGrant(status_code=409).status_code == 409


class TestHttpEnvelopes:
    """Tests for the framework-neutral request and response."""

    def test_headers_are_case_insensitive(self) -> None:
        request = HttpRequest(method="post", path="/oauth/token", headers={"Authorization": "Basic x"})

        assert request.method == "POST"
        assert request.header("AUTHORIZATION") == "Basic x"

    def test_form_of_non_object_body(self) -> None:
        assert HttpRequest(method="POST", path="/", body=["a"]).form() == {}

    def test_json_response_drops_none(self) -> None:
        response = HttpResponse.from_json({"a": 1, "b": None}, status_code=201)

        assert response.status_code == 201
        assert response.json() == {"a": 1}
        assert response.headers["Content-Type"] == "application/json"

    def test_with_headers(self) -> None:
        response = HttpResponse().with_headers(DEFAULT_HEADERS)

        assert response.headers == {"Cache-Control": "no-store", "Pragma": "no-cache"}
        assert response.json() is None


class TestSecurity:
    """Tests for the security primitives."""

    def test_constant_time_compare(self) -> None:
        assert constant_time_compare("abc", "abc")
        assert not constant_time_compare("abc", "abd")
        assert not constant_time_compare("abc", "abcd")

    def test_generated_handles_are_unique(self) -> None:
        assert len({generate_handle() for _ in range(100)}) == 100

    def test_generated_signing_keys(self) -> None:
        jwks = generate_signing_keys(kid="key-1")

        (key,) = jwks["keys"]
        assert key["kty"] == "RSA"
        assert key["kid"] == "key-1"
        assert key["use"] == "sig"
        assert key["alg"] == "RS256"
        assert "d" in key
