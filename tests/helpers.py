"""Request builders shared by the test modules."""

import base64
from typing import Any

from oauth_core.http import HttpRequest

ISSUER = "https://server.example.com"
TOKEN_PATH = "/oauth/token"
REGISTRATION_PATH = "/oauth/register"

CONFIDENTIAL_SECRET = "s3cr3t-s3cr3t-s3cr3t-s3cr3t-s3cr3t-0123"


def basic_authorization(client_id: str, client_secret: str) -> dict[str, str]:
    """Build an HTTP Basic Authorization header."""
    token = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def bearer_authorization(token: str) -> dict[str, str]:
    """Build a Bearer Authorization header."""
    return {"Authorization": f"Bearer {token}"}


def token_request(
    body: dict[str, Any], headers: dict[str, str] | None = None, path: str = TOKEN_PATH
) -> HttpRequest:
    """Build a form-encoded POST to a token-style endpoint."""
    return HttpRequest(method="POST", path=path, body=body, headers=headers or {})


def registration_request(
    method: str,
    token: str | None,
    body: Any = None,
    query: dict[str, str] | None = None,
) -> HttpRequest:
    """Build a request to the registration endpoint."""
    headers = bearer_authorization(token) if token is not None else {}
    return HttpRequest(
        method=method,
        path=REGISTRATION_PATH,
        query=query or {},
        body={} if body is None else body,
        headers=headers,
    )
