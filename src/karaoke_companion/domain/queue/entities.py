"""Core entities for the queue bounded context."""

from __future__ import annotations

from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from karaoke_companion.domain.shared.datetime_utils import utcnow
from karaoke_companion.domain.shared.types import (
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    TrackTitleStr,
    UtcDatetimeField,
)


class TrackSource(StrEnum):
    """Where a track's media comes from."""

    YOUTUBE = "youtube"
    LOCAL = "local"
    EXTERNAL = "external"


class Track(BaseModel):
    """Immutable reference to a playable karaoke video."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    title: TrackTitleStr
    artist: str | None = None
    duration_seconds: DurationSeconds | None = None
    thumbnail_url: HttpUrlStr | None = None
    source: TrackSource = TrackSource.YOUTUBE
    youtube_id: NonEmptyStr | None = None
    file_path: NonEmptyStr | None = None

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if self.duration_seconds is None:
            return "Unknown"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def display_title(self) -> str:
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title


class QueueEntry(BaseModel):
    """A track's slot in the queue or history, identified by a UUID."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr = Field(default_factory=lambda: str(uuid4()))
    track: Track
    added_at: UtcDatetimeField = Field(default_factory=utcnow)

    @classmethod
    def for_track(cls, track: Track) -> QueueEntry:
        return cls(track=track)
