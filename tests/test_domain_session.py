"""Tests for session-context entities and shared domain helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from karaoke_companion.domain.session.entities import (
    HostedSession,
    HostedSessionStatus,
    Session,
    SessionStats,
    Singer,
    SingerAssignments,
)
from karaoke_companion.domain.shared.constants import SINGER_COLORS, next_singer_color
from karaoke_companion.domain.shared.datetime_utils import UtcDateTime
from karaoke_companion.domain.shared.exceptions import RelayApiError, RelayFailureKind

NOW = datetime(2024, 5, 1, 20, 0, tzinfo=UTC)


def _hosted_session(status: HostedSessionStatus, owner: str = "user-1") -> Session:
    return Session(
        id=1,
        started_at=NOW,
        hosted_session_id="hosted-1",
        hosted_by_user_id=owner,
        hosted_session_status=status,
    )


class TestSession:
    """Tests for the Session entity and its hosted-* fields."""

    def test_plain_session_has_no_hosted_fields(self):
        session = Session(id=1, started_at=NOW)

        assert session.has_hosted_fields is False
        assert session.hosting_ended is False
        assert session.is_hosted_by_other("anyone") is False

    def test_partial_hosted_fields_rejected(self):
        with pytest.raises(ValidationError):
            Session(id=1, started_at=NOW, hosted_session_id="hosted-1")

        with pytest.raises(ValidationError):
            Session(
                id=1,
                started_at=NOW,
                hosted_session_id="hosted-1",
                hosted_by_user_id="user-1",
            )

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValidationError):
            Session(id=1, started_at=datetime(2024, 5, 1, 20, 0))

    def test_datetime_normalised_to_utc(self):
        offset = timezone(timedelta(hours=2))
        session = Session(id=1, started_at=datetime(2024, 5, 1, 22, 0, tzinfo=offset))

        assert session.started_at == NOW
        assert session.started_at.utcoffset() == timedelta(0)

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (HostedSessionStatus.ACTIVE, True),
            (HostedSessionStatus.PAUSED, True),
            (HostedSessionStatus.ENDED, False),
        ],
    )
    def test_is_hosted_by_other(self, status, expected):
        session = _hosted_session(status)

        assert session.is_hosted_by_other("user-2") is expected
        assert session.is_hosted_by_other("user-1") is False

    def test_with_hosted_status_keeps_owner(self):
        session = _hosted_session(HostedSessionStatus.ACTIVE)

        ended = session.with_hosted_status(HostedSessionStatus.ENDED)

        assert ended.hosting_ended is True
        assert ended.hosted_session_id == "hosted-1"
        assert ended.hosted_by_user_id == "user-1"

    def test_with_hosted_status_without_fields_is_noop(self):
        session = Session(id=1, started_at=NOW)
        assert session.with_hosted_status(HostedSessionStatus.ENDED) is session

    def test_with_hosted_sets_all_three(self):
        session = Session(id=1, started_at=NOW).with_hosted(
            "hosted-9", "user-3", HostedSessionStatus.ACTIVE
        )

        assert session.hosted_session_id == "hosted-9"
        assert session.hosted_by_user_id == "user-3"
        assert session.hosted_session_status is HostedSessionStatus.ACTIVE


class TestHostedSession:
    """Tests for the relay-verified HostedSession view."""

    def test_with_stats_replaces_counters_only(self):
        hosted = HostedSession(
            id="hosted-1",
            join_code="ABCD",
            join_url="https://example.com/join/ABCD",
            qr_code_url="https://qr.example.com/?data=x",
        )

        updated = hosted.with_stats(SessionStats(pending_requests=2, total_guests=5))

        assert updated.stats.pending_requests == 2
        assert updated.stats.total_guests == 5
        assert updated.join_code == "ABCD"
        assert hosted.stats == SessionStats()

    def test_negative_stats_rejected(self):
        with pytest.raises(ValidationError):
            SessionStats(pending_requests=-1)


class TestSinger:
    def test_color_must_be_hex(self):
        with pytest.raises(ValidationError):
            Singer(id=1, name="Alice", color="red")

    def test_valid_singer(self):
        singer = Singer(id=1, name="Alice", color="#EF4444")
        assert singer.is_persistent is False


class TestSingerAssignments:
    """Tests for the entry -> singers map."""

    def test_assign_is_ordered_and_unique(self):
        assignments = SingerAssignments()

        assert assignments.assign("e1", 2) is True
        assert assignments.assign("e1", 1) is True
        assert assignments.assign("e1", 2) is False

        assert assignments.singer_ids("e1") == [2, 1]

    def test_unassign_last_singer_drops_entry(self):
        assignments = SingerAssignments()
        assignments.assign("e1", 1)

        assert assignments.unassign("e1", 1) is True
        assert "e1" not in assignments.assignments
        assert len(assignments) == 0

    def test_unassign_unknown(self):
        assignments = SingerAssignments()
        assert assignments.unassign("e1", 1) is False

    def test_remove_singer_from_every_entry(self):
        assignments = SingerAssignments()
        assignments.assign("e1", 1)
        assignments.assign("e1", 2)
        assignments.assign("e2", 1)

        assignments.remove_singer(1)

        assert assignments.assignments == {"e1": [2]}

    def test_replace_dedupes_and_drops_empty(self):
        assignments = SingerAssignments()
        assignments.replace({"e1": [3, 3, 1], "e2": []})

        assert assignments.assignments == {"e1": [3, 1]}

    def test_singer_ids_returns_copy(self):
        assignments = SingerAssignments()
        assignments.assign("e1", 1)

        assignments.singer_ids("e1").append(99)

        assert assignments.singer_ids("e1") == [1]


class TestSingerColors:
    def test_first_unused_color(self):
        assert next_singer_color([]) == SINGER_COLORS[0]
        assert next_singer_color([SINGER_COLORS[0]]) == SINGER_COLORS[1]

    def test_cycles_when_palette_exhausted(self):
        used = list(SINGER_COLORS)
        assert next_singer_color(used) == SINGER_COLORS[0]


class TestUtcDateTime:
    def test_from_iso_with_z_suffix(self):
        assert UtcDateTime.from_iso("2024-05-01T20:00:00Z").dt == NOW

    def test_from_sqlite_timestamp_assumed_utc(self):
        assert UtcDateTime.from_iso("2024-05-01 20:00:00").dt == NOW

    def test_rejects_naive(self):
        with pytest.raises(ValueError):
            UtcDateTime(datetime(2024, 5, 1))

    def test_unix_round_trip(self):
        value = UtcDateTime.from_unix_seconds(1_714_593_600)
        assert value.unix_seconds == 1_714_593_600
        assert value.iso.endswith("+00:00")


class TestRelayFailureKind:
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (404, RelayFailureKind.NOT_FOUND),
            (401, RelayFailureKind.UNAUTHORIZED),
            (403, RelayFailureKind.FORBIDDEN),
            (500, RelayFailureKind.TRANSIENT),
            (None, RelayFailureKind.TRANSIENT),
        ],
    )
    def test_status_classification(self, status, kind):
        error = RelayApiError("boom", status_code=status)

        assert error.failure_kind is kind
        assert error.failure_kind.is_definitive is (kind is not RelayFailureKind.TRANSIENT)
