# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base Pydantic model configuration for all protocol entities.

Entities are immutable. A service that needs to change one (for instance to
revoke a token or replace client metadata) stores a new copy produced with
``model_copy(update=...)``.
"""

from datetime import datetime, timezone

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field


@beartype
def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@beartype
def to_timestamp(value: datetime) -> int:
    """Epoch seconds of a datetime, as used in JSON responses."""
    return int(value.timestamp())


@beartype
class BaseModelConfig(BaseModel):
    """Base model with strict configuration for all entities.

    Enforces:
    - Immutability (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Validation on assignment
    - Timezone-aware datetime handling
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        validate_default=True,
    )


@beartype
class TimestampedModel(BaseModelConfig):
    """Base model with a creation timestamp."""

    created_at: datetime = Field(
        default_factory=utc_now, description="Timestamp when the entity was created"
    )
