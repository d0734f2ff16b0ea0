"""Pending queue plus navigable play history.

The history cursor is either ``None`` (the tip: the most recently appended
entry is current) or an explicit index the user has rewound to. Every append
to history resets the cursor to the tip.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from karaoke_companion.domain.queue.entities import QueueEntry, Track
from karaoke_companion.domain.shared.exceptions import BusinessRuleViolationError
from karaoke_companion.domain.shared.types import NonNegativeInt

HISTORY_TIP_INDEX = -1
"""Persisted form of the tip cursor."""


class QueueSnapshot(BaseModel):
    """Persisted shape of the queue, as loaded from the store."""

    queue: list[QueueEntry] = Field(default_factory=list)
    history: list[QueueEntry] = Field(default_factory=list)
    history_index: int = HISTORY_TIP_INDEX


class PlayQueue(BaseModel):
    """Play-order bookkeeping: pending queue, history and the history cursor."""

    queue: list[QueueEntry] = Field(default_factory=list)
    history: list[QueueEntry] = Field(default_factory=list)
    history_index: NonNegativeInt | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> PlayQueue:
        ids = [entry.id for entry in self.queue]
        if len(ids) != len(set(ids)):
            raise ValueError("Queue entry ids must be unique")
        if self.history_index is not None and self.history_index >= len(self.history):
            raise ValueError("History cursor out of range")
        return self

    # ── Cursor helpers ──────────────────────────────────────────────

    @property
    def is_at_tip(self) -> bool:
        return self.history_index is None

    @property
    def effective_index(self) -> int:
        """Index of the current history entry, ``-1`` when history is empty."""
        if self.history_index is None:
            return len(self.history) - 1
        return self.history_index

    @property
    def persisted_history_index(self) -> int:
        return HISTORY_TIP_INDEX if self.history_index is None else self.history_index

    def _append_to_history(self, entry: QueueEntry) -> None:
        self.history.append(entry)
        self.history_index = None

    def _find(self, entry_id: str) -> int | None:
        for i, entry in enumerate(self.queue):
            if entry.id == entry_id:
                return i
        return None

    # ── Queue mutations ─────────────────────────────────────────────

    def enqueue(self, track: Track, at_front: bool = False) -> QueueEntry:
        """Create an entry for *track* and append it (or put it first)."""
        entry = QueueEntry.for_track(track)
        if self._find(entry.id) is not None:
            raise BusinessRuleViolationError(rule="UNIQUE_QUEUE_ENTRY_ID")

        if at_front:
            self.queue.insert(0, entry)
        else:
            self.queue.append(entry)
        return entry

    def remove(self, entry_id: str) -> QueueEntry | None:
        index = self._find(entry_id)
        if index is None:
            return None
        return self.queue.pop(index)

    def reorder(self, entry_id: str, new_position: int) -> bool:
        """Move an entry to *new_position*, clamped to the queue bounds."""
        index = self._find(entry_id)
        if index is None:
            return False

        entry = self.queue.pop(index)
        target = max(0, min(new_position, len(self.queue)))
        self.queue.insert(target, entry)
        return True

    def clear_queue(self) -> int:
        count = len(self.queue)
        self.queue.clear()
        return count

    def clear_history(self) -> int:
        count = len(self.history)
        self.history.clear()
        self.history_index = None
        return count

    def move_all_history_to_queue(self) -> int:
        """Re-queue everything already played, in play order."""
        count = len(self.history)
        self.queue.extend(self.history)
        self.history = []
        self.history_index = None
        return count

    def undo_requeue(self, requeued: list[QueueEntry], history_index: int | None) -> int:
        """Put *requeued* entries back into history, leaving later changes alone.

        Entries already played again since the requeue stay where they are. The
        old cursor is only restored while nothing new has reached history.
        """
        requeued_ids = {entry.id for entry in requeued}
        played_ids = {entry.id for entry in self.history}
        restored = [entry for entry in requeued if entry.id not in played_ids]

        self.queue = [entry for entry in self.queue if entry.id not in requeued_ids]
        if not self.history:
            self.history = restored
            self.history_index = history_index if restored else None
        else:
            self.history = [*restored, *self.history]
        return len(restored)

    # ── Playback navigation ─────────────────────────────────────────

    def play_direct(self, track: Track) -> QueueEntry:
        """Play *track* immediately without touching the queue."""
        entry = QueueEntry.for_track(track)
        self._append_to_history(entry)
        return entry

    def play_from_queue(self, index: int) -> QueueEntry | None:
        if not 0 <= index < len(self.queue):
            return None

        entry = self.queue.pop(index)
        self._append_to_history(entry)
        return entry

    def play_from_history(self, index: int) -> QueueEntry | None:
        if not 0 <= index < len(self.history):
            return None

        self.history_index = index
        return self.history[index]

    def play_next(self) -> QueueEntry | None:
        """Redo forward through history, otherwise pull the head of the queue."""
        effective = self.effective_index
        if effective < len(self.history) - 1:
            self.history_index = effective + 1
            return self.history[effective + 1]

        if not self.queue:
            return None

        entry = self.queue.pop(0)
        self._append_to_history(entry)
        return entry

    def play_previous(self) -> QueueEntry | None:
        effective = self.effective_index
        if effective <= 0:
            return None

        self.history_index = effective - 1
        return self.history[effective - 1]

    # ── Queries ─────────────────────────────────────────────────────

    def current_entry(self) -> QueueEntry | None:
        if not self.history:
            return None
        return self.history[self.effective_index]

    def has_next(self) -> bool:
        return self.effective_index < len(self.history) - 1 or bool(self.queue)

    def has_previous(self) -> bool:
        return bool(self.history) and self.effective_index > 0

    # ── Persistence ─────────────────────────────────────────────────

    def restore(self, snapshot: QueueSnapshot) -> bool:
        """Replace state with *snapshot*, clamping a stale cursor.

        Returns True when the persisted cursor had to be corrected.
        """
        index = snapshot.history_index
        corrected = False
        if not snapshot.history:
            corrected = index != HISTORY_TIP_INDEX
            index = HISTORY_TIP_INDEX
        elif index >= len(snapshot.history):
            corrected = True
            index = len(snapshot.history) - 1
        elif index < HISTORY_TIP_INDEX:
            corrected = True
            index = HISTORY_TIP_INDEX

        self.queue = list(snapshot.queue)
        self.history = list(snapshot.history)
        self.history_index = None if index == HISTORY_TIP_INDEX else index
        return corrected

    def reset(self) -> None:
        self.queue = []
        self.history = []
        self.history_index = None
