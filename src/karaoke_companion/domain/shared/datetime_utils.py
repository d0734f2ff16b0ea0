"""Date/time helpers.

- Always store and operate on timezone-aware UTC datetimes.
- SQLite rows keep ISO-8601 strings; older rows may use SQLite's
  ``CURRENT_TIMESTAMP`` format (space separator, no offset).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from ...domain.shared.messages import ErrorMessages


@dataclass(frozen=True, slots=True)
class UtcDateTime:
    """A tiny value-object wrapper around a timezone-aware UTC `datetime`."""

    dt: datetime

    def __post_init__(self) -> None:
        if self.dt.tzinfo is None:
            raise ValueError(ErrorMessages.TIMEZONE_REQUIRED_UTC_DATETIME)
        object.__setattr__(self, "dt", self.dt.astimezone(UTC))

    @classmethod
    def now(cls) -> UtcDateTime:
        return cls(datetime.now(UTC))

    @classmethod
    def from_iso(cls, value: str) -> UtcDateTime:
        # Accepts: '...+00:00', '...Z' and naive SQLite timestamps (assumed UTC)
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return cls(parsed)

    @classmethod
    def from_unix_seconds(cls, seconds: int) -> UtcDateTime:
        return cls(datetime.fromtimestamp(int(seconds), tz=UTC))

    @property
    def iso(self) -> str:
        """RFC3339/ISO8601 with explicit offset (+00:00)."""
        return self.dt.isoformat()

    @property
    def unix_seconds(self) -> int:
        return int(self.dt.timestamp())


def utcnow() -> datetime:
    """Timezone-aware ``now`` in UTC."""
    return datetime.now(UTC)
