# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 endpoints mounted on FastAPI.

The router only translates between Starlette and the engine's
:class:`~oauth_core.http.HttpRequest` / :class:`~oauth_core.http.HttpResponse`;
all protocol decisions happen in the endpoints.
"""

import json
from typing import Any

from beartype import beartype
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ..core.logging_utils import get_logger
from ..http import HttpRequest, HttpResponse
from ..server import AuthorizationServer

logger = get_logger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth2"])


@beartype
def get_authorization_server(request: Request) -> AuthorizationServer:
    """Get the authorization server attached to the application."""
    server: AuthorizationServer = request.app.state.authorization_server
    return server


async def _read_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type == "application/x-www-form-urlencoded":
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    if content_type == "application/json":
        raw = await request.body()
        try:
            return json.loads(raw)  # SYSTEM_BOUNDARY - client supplied JSON
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Rejected malformed JSON body on %s", request.url.path)
            return None

    return {}


@beartype
async def to_http_request(request: Request) -> HttpRequest:
    """Translate a Starlette request."""
    body = await _read_body(request) if request.method in ("POST", "PUT") else {}
    return HttpRequest(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
    )


@beartype
def to_response(response: HttpResponse) -> Response:
    """Translate an engine response."""
    return Response(
        content=response.body,
        status_code=response.status_code,
        headers=response.headers,
    )


async def _dispatch(request: Request, server: AuthorizationServer, name: str) -> Response:
    endpoint = server.endpoints.get(name)
    if endpoint is None:
        raise HTTPException(status_code=404, detail=f"The {name} endpoint is not enabled.")
    response = await endpoint.handle(await to_http_request(request))
    return to_response(response)


@router.post("/token")
async def token(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Token endpoint (RFC 6749 §3.2)."""
    return await _dispatch(request, server, "token")


@router.api_route("/register", methods=["POST", "GET", "PUT", "DELETE"])
async def register(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Dynamic Client Registration endpoint (RFC 7591 / RFC 7592)."""
    return await _dispatch(request, server, "registration")


@router.post("/revoke")
async def revoke(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Token revocation endpoint (RFC 7009)."""
    return await _dispatch(request, server, "revocation")


@router.post("/introspect")
async def introspect(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Token introspection endpoint (RFC 7662)."""
    return await _dispatch(request, server, "introspection")


@router.post("/device-authorization")
async def device_authorization(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Device authorization endpoint (RFC 8628 §3.1)."""
    return await _dispatch(request, server, "device_authorization")


@router.api_route("/userinfo", methods=["GET", "POST"])
async def userinfo(
    request: Request, server: AuthorizationServer = Depends(get_authorization_server)
) -> Response:
    """Userinfo endpoint (OIDC Core §5.3)."""
    return await _dispatch(request, server, "userinfo")
