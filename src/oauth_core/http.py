# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Framework-neutral HTTP request and response envelopes.

The protocol engine never touches a web framework object directly; adapters
(see :mod:`oauth_core.api.oauth2`) translate to and from these values.
"""

import json
from typing import Any, Final

from attrs import evolve, field, frozen
from beartype import beartype

DEFAULT_HEADERS: Final = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _lower_keys(headers: dict[str, str]) -> dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}


@beartype
def remove_none_values(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in data.items() if value is not None}


@frozen
class HttpRequest:
    """Inbound request as seen by the engine.

    ``body`` holds the parsed form or JSON body; ``headers`` keys are
    lower-cased on construction.
    """

    method: str = field(converter=str.upper)
    path: str
    query: dict[str, Any] = field(factory=dict)
    body: Any = field(factory=dict)
    headers: dict[str, str] = field(factory=dict, converter=_lower_keys)

    @beartype
    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())

    @beartype
    def form(self) -> dict[str, Any]:
        """Body parameters, or an empty mapping if the body is not an object."""
        return self.body if isinstance(self.body, dict) else {}


@frozen
class HttpResponse:
    """Outbound response produced by an endpoint."""

    status_code: int = 200
    headers: dict[str, str] = field(factory=dict)
    body: bytes = b""

    @beartype
    def with_headers(self, headers: dict[str, str]) -> "HttpResponse":
        """Return a copy with the headers merged in; later values win."""
        return evolve(self, headers={**self.headers, **headers})

    @beartype
    def json(self) -> Any:
        """Decode the JSON body."""
        return json.loads(self.body) if self.body else None

    @classmethod
    def from_json(
        cls, data: dict[str, Any], status_code: int = 200, headers: dict[str, str] | None = None
    ) -> "HttpResponse":
        """Build a JSON response without None-valued members."""
        return cls(
            status_code=status_code,
            headers={"Content-Type": "application/json", **(headers or {})},
            body=json.dumps(remove_none_values(data)).encode("utf-8"),
        )
