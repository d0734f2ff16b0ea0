"""Entities for the session bounded context.

``Session`` is the durable local record. ``HostedSession`` is the ephemeral,
relay-verified view of a hosted session. The two share only the hosted id and
are never merged: their lifecycles and persistence guarantees differ.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from karaoke_companion.domain.shared.types import (
    HexColorStr,
    NonEmptyStr,
    NonNegativeInt,
    SessionIdInt,
    SingerIdInt,
    UtcDatetimeField,
)


class HostedSessionStatus(StrEnum):
    """Hosted-session status as stored on the session and reported by the relay."""

    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"

    @property
    def is_live(self) -> bool:
        return self is not HostedSessionStatus.ENDED


class Session(BaseModel):
    """A karaoke night, with the linkage to its most recent hosted session.

    The three ``hosted_*`` fields are all set or all unset. Once set they are
    never cleared; stopping a hosted session only advances the status.
    """

    model_config = ConfigDict(frozen=True)

    id: SessionIdInt
    name: str | None = None
    started_at: UtcDatetimeField
    ended_at: UtcDatetimeField | None = None
    is_active: bool = True

    hosted_session_id: NonEmptyStr | None = None
    hosted_by_user_id: NonEmptyStr | None = None
    hosted_session_status: HostedSessionStatus | None = None

    @model_validator(mode="after")
    def _check_hosted_fields(self) -> Session:
        present = [
            self.hosted_session_id is not None,
            self.hosted_by_user_id is not None,
            self.hosted_session_status is not None,
        ]
        if any(present) and not all(present):
            raise ValueError("hosted_* fields must be all set or all unset")
        return self

    @property
    def has_hosted_fields(self) -> bool:
        return self.hosted_session_id is not None

    @property
    def hosting_ended(self) -> bool:
        return self.hosted_session_status == HostedSessionStatus.ENDED

    def is_hosted_by_other(self, user_id: str) -> bool:
        """True when a different user holds a live (active/paused) hosted session."""
        return (
            self.has_hosted_fields
            and self.hosted_by_user_id != user_id
            and self.hosted_session_status is not None
            and self.hosted_session_status.is_live
        )

    def with_hosted(
        self, hosted_session_id: str, user_id: str, status: HostedSessionStatus
    ) -> Session:
        return self.model_copy(
            update={
                "hosted_session_id": hosted_session_id,
                "hosted_by_user_id": user_id,
                "hosted_session_status": status,
            }
        )

    def with_hosted_status(self, status: HostedSessionStatus) -> Session:
        """Advance the hosted status, keeping the id and owner for the record."""
        if not self.has_hosted_fields:
            return self
        return self.model_copy(update={"hosted_session_status": status})


class SessionStats(BaseModel):
    """Guest activity counters reported by the relay."""

    model_config = ConfigDict(frozen=True)

    pending_requests: NonNegativeInt = 0
    approved_requests: NonNegativeInt = 0
    total_guests: NonNegativeInt = 0


class HostedSession(BaseModel):
    """Relay-verified view of a hosted session. Exists only while live."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    join_code: NonEmptyStr
    join_url: str
    qr_code_url: str
    status: HostedSessionStatus = HostedSessionStatus.ACTIVE
    stats: SessionStats = Field(default_factory=SessionStats)
    expires_at: UtcDatetimeField | None = None

    def with_stats(self, stats: SessionStats) -> HostedSession:
        return self.model_copy(update={"stats": stats})


class Singer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: SingerIdInt
    name: NonEmptyStr
    color: HexColorStr
    is_persistent: bool = False
    online_id: str | None = None


class SingerAssignments(BaseModel):
    """Queue/history entry id -> ordered, duplicate-free singer ids.

    An entry whose last singer is removed disappears from the map.
    """

    assignments: dict[str, list[SingerIdInt]] = Field(default_factory=dict)

    def singer_ids(self, entry_id: str) -> list[int]:
        return list(self.assignments.get(entry_id, []))

    def assign(self, entry_id: str, singer_id: int) -> bool:
        current = self.assignments.setdefault(entry_id, [])
        if singer_id in current:
            return False
        current.append(singer_id)
        return True

    def unassign(self, entry_id: str, singer_id: int) -> bool:
        current = self.assignments.get(entry_id)
        if current is None or singer_id not in current:
            return False
        current.remove(singer_id)
        if not current:
            del self.assignments[entry_id]
        return True

    def clear_entry(self, entry_id: str) -> None:
        self.assignments.pop(entry_id, None)

    def remove_singer(self, singer_id: int) -> None:
        """Strip a singer from every entry."""
        for entry_id in list(self.assignments):
            self.unassign(entry_id, singer_id)

    def replace(self, assignments: dict[str, list[int]]) -> None:
        cleaned: dict[str, list[int]] = {}
        for entry_id, singer_ids in assignments.items():
            unique = list(dict.fromkeys(singer_ids))
            if unique:
                cleaned[entry_id] = unique
        self.assignments = cleaned

    def reset(self) -> None:
        self.assignments = {}

    def __len__(self) -> int:
        return len(self.assignments)
