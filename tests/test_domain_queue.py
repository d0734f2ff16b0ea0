"""
Unit Tests for the Queue Domain

Tests for:
- Track and QueueEntry entities
- PlayQueue mutations and history-cursor navigation
- Restoring persisted state with cursor correction
"""

import pytest
from pydantic import ValidationError

from karaoke_companion.domain.queue.entities import QueueEntry, Track, TrackSource
from karaoke_companion.domain.queue.play_queue import HISTORY_TIP_INDEX, PlayQueue, QueueSnapshot


def _track(name: str) -> Track:
    return Track(id=f"vid-{name}", title=f"Song {name}")


def _entry(name: str) -> QueueEntry:
    return QueueEntry(id=f"entry-{name}", track=_track(name))


def _titles(entries: list[QueueEntry]) -> list[str]:
    return [e.track.title for e in entries]


# =============================================================================
# Entities
# =============================================================================


class TestTrack:
    """Tests for the Track entity."""

    def test_defaults_to_youtube_source(self):
        track = Track(id="abc", title="Title")
        assert track.source is TrackSource.YOUTUBE

    def test_rejects_empty_title(self):
        with pytest.raises(ValidationError):
            Track(id="abc", title="")

    def test_rejects_non_http_thumbnail(self):
        with pytest.raises(ValidationError):
            Track(id="abc", title="Title", thumbnail_url="ftp://example.com/x.jpg")

    def test_duration_formatted(self):
        assert Track(id="a", title="t", duration_seconds=95).duration_formatted == "1:35"
        assert Track(id="a", title="t", duration_seconds=3725).duration_formatted == "1:02:05"
        assert Track(id="a", title="t").duration_formatted == "Unknown"

    def test_display_title_includes_artist(self):
        assert Track(id="a", title="Song", artist="Band").display_title == "Band - Song"
        assert Track(id="a", title="Song").display_title == "Song"

    def test_is_frozen(self):
        track = Track(id="a", title="Song")
        with pytest.raises(ValidationError):
            track.title = "Other"


class TestQueueEntry:
    """Tests for the QueueEntry entity."""

    def test_for_track_assigns_unique_ids(self):
        track = _track("A")
        first = QueueEntry.for_track(track)
        second = QueueEntry.for_track(track)

        assert first.id != second.id
        assert first.track == second.track

    def test_added_at_is_utc(self):
        entry = QueueEntry.for_track(_track("A"))
        assert entry.added_at.tzinfo is not None


# =============================================================================
# PlayQueue mutations
# =============================================================================


class TestPlayQueueMutations:
    """Tests for enqueue/remove/reorder/clear."""

    def test_enqueue_appends(self):
        queue = PlayQueue()
        queue.enqueue(_track("A"))
        queue.enqueue(_track("B"))

        assert _titles(queue.queue) == ["Song A", "Song B"]

    def test_enqueue_at_front(self):
        queue = PlayQueue()
        queue.enqueue(_track("A"))
        queue.enqueue(_track("B"), at_front=True)

        assert _titles(queue.queue) == ["Song B", "Song A"]

    def test_enqueue_same_track_twice_creates_distinct_entries(self):
        queue = PlayQueue()
        first = queue.enqueue(_track("A"))
        second = queue.enqueue(_track("A"))

        assert first.id != second.id
        assert len(queue.queue) == 2

    def test_remove_existing(self):
        queue = PlayQueue()
        entry = queue.enqueue(_track("A"))

        assert queue.remove(entry.id) == entry
        assert queue.queue == []

    def test_remove_missing_is_noop(self):
        queue = PlayQueue()
        queue.enqueue(_track("A"))

        assert queue.remove("missing") is None
        assert len(queue.queue) == 1

    def test_reorder_moves_entry(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B"), _entry("C")])

        assert queue.reorder("entry-C", 0) is True
        assert _titles(queue.queue) == ["Song C", "Song A", "Song B"]

    def test_reorder_clamps_position(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B"), _entry("C")])

        queue.reorder("entry-A", 99)
        assert _titles(queue.queue) == ["Song B", "Song C", "Song A"]

        queue.reorder("entry-A", -5)
        assert _titles(queue.queue) == ["Song A", "Song B", "Song C"]

    def test_reorder_to_current_position_changes_nothing(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B"), _entry("C")])
        before = queue.model_copy(deep=True)

        queue.reorder("entry-B", 1)

        assert queue == before

    def test_reorder_missing_is_noop(self):
        queue = PlayQueue(queue=[_entry("A")])
        assert queue.reorder("missing", 0) is False

    def test_clear_queue_returns_count(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B")])
        assert queue.clear_queue() == 2
        assert queue.queue == []

    def test_clear_history_resets_cursor(self):
        queue = PlayQueue(history=[_entry("X"), _entry("Y")], history_index=0)

        assert queue.clear_history() == 2
        assert queue.history == []
        assert queue.is_at_tip

    def test_move_all_history_to_queue(self):
        queue = PlayQueue(
            queue=[_entry("A")],
            history=[_entry("X"), _entry("Y")],
            history_index=0,
        )

        assert queue.move_all_history_to_queue() == 2
        assert _titles(queue.queue) == ["Song A", "Song X", "Song Y"]
        assert queue.history == []
        assert queue.is_at_tip

    def test_undo_requeue_restores_history_and_cursor(self):
        queue = PlayQueue(
            queue=[_entry("A")],
            history=[_entry("X"), _entry("Y")],
            history_index=0,
        )
        requeued = list(queue.history)
        queue.move_all_history_to_queue()
        queue.enqueue(_track("B"))

        assert queue.undo_requeue(requeued, 0) == 2
        assert _titles(queue.queue) == ["Song A", "Song B"]
        assert _titles(queue.history) == ["Song X", "Song Y"]
        assert queue.history_index == 0

    def test_undo_requeue_keeps_entries_played_since(self):
        queue = PlayQueue(history=[_entry("X"), _entry("Y")])
        requeued = list(queue.history)
        queue.move_all_history_to_queue()
        queue.play_next()

        assert queue.undo_requeue(requeued, None) == 1
        assert queue.queue == []
        assert _titles(queue.history) == ["Song Y", "Song X"]
        assert queue.is_at_tip

    def test_rejects_duplicate_queue_ids(self):
        with pytest.raises(ValidationError):
            PlayQueue(queue=[_entry("A"), _entry("A")])

    def test_rejects_cursor_out_of_range(self):
        with pytest.raises(ValidationError):
            PlayQueue(history=[_entry("X")], history_index=1)


# =============================================================================
# PlayQueue navigation
# =============================================================================


class TestPlayQueueNavigation:
    """Tests for play_* navigation and the history cursor."""

    def test_play_direct_bypasses_queue(self):
        queue = PlayQueue(queue=[_entry("A")], history=[_entry("X")], history_index=0)

        entry = queue.play_direct(_track("D"))

        assert _titles(queue.queue) == ["Song A"]
        assert queue.history[-1] == entry
        assert queue.is_at_tip
        assert queue.current_entry() == entry

    def test_play_from_queue(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B")])

        entry = queue.play_from_queue(1)

        assert entry is not None and entry.id == "entry-B"
        assert _titles(queue.queue) == ["Song A"]
        assert queue.history == [entry]
        assert queue.is_at_tip

    @pytest.mark.parametrize("index", [-1, 2, 100])
    def test_play_from_queue_out_of_range(self, index):
        queue = PlayQueue(queue=[_entry("A"), _entry("B")])

        assert queue.play_from_queue(index) is None
        assert len(queue.queue) == 2

    def test_play_from_history_only_moves_cursor(self):
        queue = PlayQueue(history=[_entry("X"), _entry("Y"), _entry("Z")])

        entry = queue.play_from_history(0)

        assert entry is not None and entry.id == "entry-X"
        assert len(queue.history) == 3
        assert queue.history_index == 0

    def test_play_from_history_out_of_range(self):
        queue = PlayQueue(history=[_entry("X")])
        assert queue.play_from_history(1) is None
        assert queue.is_at_tip

    def test_play_next_pulls_from_queue(self):
        queue = PlayQueue(queue=[_entry("A"), _entry("B")])

        entry = queue.play_next()

        assert entry is not None and entry.id == "entry-A"
        assert queue.is_at_tip
        assert queue.has_next() is True

        queue.play_next()
        assert queue.has_next() is False

    def test_play_next_redoes_history_before_pulling(self):
        queue = PlayQueue(
            queue=[_entry("A")],
            history=[_entry("X"), _entry("Y")],
            history_index=0,
        )

        entry = queue.play_next()

        assert entry is not None and entry.id == "entry-Y"
        assert queue.history_index == 1
        assert len(queue.queue) == 1

    def test_play_next_empty(self):
        queue = PlayQueue(history=[_entry("X")])
        assert queue.play_next() is None

    def test_play_previous_walk_back_to_start(self):
        """History [X, Y, Z] at the tip walks back to X and stops there."""
        queue = PlayQueue(history=[_entry("X"), _entry("Y"), _entry("Z")])
        assert queue.effective_index == 2
        assert queue.current_entry().id == "entry-Z"

        assert queue.play_previous().id == "entry-Y"
        assert queue.history_index == 1

        assert queue.play_previous().id == "entry-X"
        assert queue.history_index == 0

        assert queue.play_previous() is None
        assert queue.history_index == 0

    def test_previous_then_next_round_trip(self):
        queue = PlayQueue(
            queue=[_entry("A")],
            history=[_entry("X"), _entry("Y"), _entry("Z")],
            history_index=1,
        )
        start_current = queue.current_entry()
        start_index = queue.effective_index

        queue.play_previous()
        queue.play_next()

        assert queue.current_entry() == start_current
        assert queue.effective_index == start_index
        assert len(queue.queue) == 1

    def test_history_only_grows_under_navigation(self):
        queue = PlayQueue()
        for name in "ABCD":
            queue.enqueue(_track(name))

        lengths = [len(queue.history)]
        queue_lengths = [len(queue.queue)]
        for step in (
            lambda: queue.play_next(),
            lambda: queue.play_from_queue(1),
            lambda: queue.play_previous(),
            lambda: queue.play_next(),
            lambda: queue.enqueue(_track("E")),
            lambda: queue.play_next(),
        ):
            step()
            lengths.append(len(queue.history))
            queue_lengths.append(len(queue.queue))

        assert lengths == sorted(lengths)
        assert queue_lengths == [4, 3, 2, 2, 2, 3, 2]

    def test_has_previous(self):
        assert PlayQueue().has_previous() is False
        assert PlayQueue(history=[_entry("X")]).has_previous() is False
        assert PlayQueue(history=[_entry("X"), _entry("Y")]).has_previous() is True

    def test_current_entry_empty(self):
        assert PlayQueue().current_entry() is None


# =============================================================================
# Restore / reset
# =============================================================================


class TestPlayQueueRestore:
    """Tests for loading persisted snapshots."""

    def test_restore_tip(self):
        queue = PlayQueue()
        snapshot = QueueSnapshot(queue=[_entry("A")], history=[_entry("X")])

        corrected = queue.restore(snapshot)

        assert corrected is False
        assert queue.is_at_tip
        assert queue.persisted_history_index == HISTORY_TIP_INDEX

    def test_restore_valid_cursor(self):
        queue = PlayQueue()
        corrected = queue.restore(
            QueueSnapshot(history=[_entry("X"), _entry("Y")], history_index=0)
        )

        assert corrected is False
        assert queue.history_index == 0

    def test_restore_clamps_cursor_past_end(self):
        queue = PlayQueue()
        corrected = queue.restore(
            QueueSnapshot(history=[_entry("X"), _entry("Y")], history_index=5)
        )

        assert corrected is True
        assert queue.history_index == 1

    def test_restore_empty_history_forces_tip(self):
        queue = PlayQueue()
        corrected = queue.restore(QueueSnapshot(history_index=3))

        assert corrected is True
        assert queue.is_at_tip

    def test_restore_negative_cursor_forces_tip(self):
        queue = PlayQueue()
        corrected = queue.restore(QueueSnapshot(history=[_entry("X")], history_index=-4))

        assert corrected is True
        assert queue.is_at_tip

    def test_reset(self):
        queue = PlayQueue(queue=[_entry("A")], history=[_entry("X")], history_index=0)
        queue.reset()

        assert queue.queue == [] and queue.history == []
        assert queue.is_at_tip
