"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across bounded contexts is defined here once,
so models can simply annotate their fields::

    from karaoke_companion.domain.shared.types import NonEmptyStr, SingerIdInt

    class MyModel(BaseModel):
        singer_id: SingerIdInt
        name: NonEmptyStr
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

# ── Numeric constraints ─────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

SessionIdInt = Annotated[int, Field(gt=0)]
"""Local (SQLite) session row id."""

SingerIdInt = Annotated[int, Field(gt=0)]
"""Local singer row id."""

UnixSeconds = Annotated[int, Field(ge=0)]
"""Seconds since the epoch, as issued by the auth provider."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Track title: 1-500 characters."""

HttpUrlStr = Annotated[str, Field(pattern=r"^https?://")]
"""String that starts with http:// or https://."""

HexColorStr = Annotated[str, Field(pattern=r"^#[0-9a-fA-F]{6}$")]
"""Singer color as ``#rrggbb``."""


# ── Domain-specific numeric constraints ─────────────────────────────

DurationSeconds = Annotated[int, Field(ge=0, le=86_400)]
"""Track duration in seconds: 0 … 86 400 (24 hours)."""


# ── Datetime constraints ────────────────────────────────────────────

def _ensure_utc(v: datetime) -> datetime:
    """Validate that a datetime is timezone-aware and normalise to UTC."""
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC on input."""
