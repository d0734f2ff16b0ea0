"""Queue Application Service - play order, navigation and background persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from ...domain.queue.play_queue import PlayQueue, QueueSnapshot
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.queue.entities import QueueEntry, Track
    from ...domain.queue.repository import QueueRepository
    from .fair_insertion import FairInsertionPolicy

logger = logging.getLogger(__name__)


class QueueApplicationService:
    """Wraps the in-memory ``PlayQueue`` and mirrors every change to the store.

    Navigation is synchronous: the in-memory model is authoritative and each
    change schedules a background write. Writes run one at a time in the order
    they were issued; failures are logged and never raised to the caller.
    """

    def __init__(
        self,
        *,
        queue_repository: QueueRepository,
        fair_insertion: FairInsertionPolicy | None = None,
    ) -> None:
        self._repo = queue_repository
        self._fair_insertion = fair_insertion
        self._model = PlayQueue()
        self._pending: set[asyncio.Task[None]] = set()
        self._write_lock = asyncio.Lock()
        self._initialized = False

    # === Queries ===

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def queue(self) -> list[QueueEntry]:
        return list(self._model.queue)

    @property
    def history(self) -> list[QueueEntry]:
        return list(self._model.history)

    @property
    def history_index(self) -> int:
        """The history cursor, ``-1`` at the tip."""
        return self._model.persisted_history_index

    def current_entry(self) -> QueueEntry | None:
        return self._model.current_entry()

    def has_next(self) -> bool:
        return self._model.has_next()

    def has_previous(self) -> bool:
        return self._model.has_previous()

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            queue=self.queue,
            history=self.history,
            history_index=self.history_index,
        )

    # === Persistence lifecycle ===

    async def load_persisted_state(self) -> None:
        """Load the active session's queue, correcting a stale cursor."""
        try:
            snapshot = await self._repo.get_state()
        except Exception as exc:
            logger.error(LogTemplates.QUEUE_PERSIST_FAILED, "load", exc)
            self._initialized = True
            return

        if snapshot is None:
            self._model.reset()
            self._initialized = True
            return

        corrected = self._model.restore(snapshot)
        if corrected:
            index = self._model.persisted_history_index
            logger.info(LogTemplates.QUEUE_CURSOR_CORRECTED, index)
            self._persist("set_history_index", lambda: self._repo.set_history_index(index))

        self._initialized = True
        logger.info(
            LogTemplates.QUEUE_STATE_LOADED,
            len(self._model.queue),
            len(self._model.history),
            self._model.persisted_history_index,
        )

    def reset_state(self) -> None:
        self._model.reset()
        self._initialized = False

    async def flush(self) -> None:
        """Wait for every scheduled write to finish."""
        flushed = 0
        while self._pending:
            pending = list(self._pending)
            flushed += len(pending)
            await asyncio.gather(*pending)
        if flushed:
            logger.debug(LogTemplates.QUEUE_FLUSHED, flushed)

    def _persist(
        self,
        operation: str,
        write: Callable[[], Coroutine[Any, Any, None]],
        on_error: Callable[[], None] | None = None,
    ) -> None:
        async def run() -> None:
            async with self._write_lock:
                try:
                    await write()
                except Exception as exc:
                    logger.error(LogTemplates.QUEUE_PERSIST_FAILED, operation, exc)
                    if on_error is not None:
                        on_error()

        task = asyncio.create_task(run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # === Queue mutations ===

    async def enqueue(self, track: Track, at_front: bool = False) -> QueueEntry:
        """Add a track to the queue, then apply fair insertion when enabled.

        The entry is always appended first; a fair position, if any, is applied
        as a separate reorder. Placing at the front bypasses fair insertion.
        """
        entry = self._model.enqueue(track, at_front=at_front)
        position = 0 if at_front else len(self._model.queue) - 1
        logger.info(LogTemplates.QUEUE_ENQUEUED, track.title, entry.id, position)
        self._persist("add_item", lambda: self._repo.add_item(entry, position))

        if at_front or self._fair_insertion is None:
            return entry

        try:
            target = await self._fair_insertion.target_position()
        except Exception as exc:
            logger.warning(LogTemplates.FAIR_POSITION_FAILED, entry.id, exc)
            return entry

        if target is not None:
            self.reorder(entry.id, target)
        return entry

    def remove(self, entry_id: str) -> bool:
        removed = self._model.remove(entry_id)
        if removed is None:
            return False

        logger.info(LogTemplates.QUEUE_REMOVED, entry_id)
        self._persist("remove_item", lambda: self._repo.remove_item(entry_id))
        return True

    def reorder(self, entry_id: str, new_position: int) -> bool:
        if not self._model.reorder(entry_id, new_position):
            return False

        final = next(i for i, e in enumerate(self._model.queue) if e.id == entry_id)
        logger.info(LogTemplates.QUEUE_REORDERED, entry_id, final)
        self._persist("reorder", lambda: self._repo.reorder(entry_id, final))
        return True

    def clear_queue(self) -> None:
        count = self._model.clear_queue()
        logger.info(LogTemplates.QUEUE_CLEARED, count)
        self._persist("clear_queue", self._repo.clear_queue)

    def clear_history(self) -> None:
        count = self._model.clear_history()
        logger.info(LogTemplates.HISTORY_CLEARED, count)
        self._persist("clear_history", self._repo.clear_history)

    def move_all_history_to_queue(self) -> int:
        """Re-queue the whole history; reverted if the store rejects it."""
        if not self._model.history:
            return 0

        requeued = list(self._model.history)
        previous_index = self._model.history_index
        count = self._model.move_all_history_to_queue()
        logger.info(LogTemplates.HISTORY_REQUEUED, count)

        def rollback() -> None:
            restored = self._model.undo_requeue(requeued, previous_index)
            logger.warning(LogTemplates.HISTORY_REQUEUE_ROLLED_BACK, restored)

        self._persist("move_all_history_to_queue", self._repo.move_all_history_to_queue, rollback)
        return count

    # === Playback navigation ===

    def play_direct(self, track: Track) -> QueueEntry:
        entry = self._model.play_direct(track)
        position = len(self._model.history) - 1
        logger.info(LogTemplates.QUEUE_PLAYING, track.title, "direct")
        self._persist("add_to_history", lambda: self._repo.add_to_history(entry, position))
        self._persist_cursor()
        return entry

    def play_from_queue(self, index: int) -> QueueEntry | None:
        entry = self._model.play_from_queue(index)
        if entry is None:
            logger.debug(LogTemplates.QUEUE_INDEX_EMPTY, "queue", index)
            return None

        logger.info(LogTemplates.QUEUE_PLAYING, entry.track.title, "queue")
        self._persist("move_to_history", lambda: self._repo.move_to_history(entry.id))
        self._persist_cursor()
        return entry

    def play_from_history(self, index: int) -> QueueEntry | None:
        entry = self._model.play_from_history(index)
        if entry is None:
            logger.debug(LogTemplates.QUEUE_INDEX_EMPTY, "history", index)
            return None

        logger.info(LogTemplates.QUEUE_PLAYING, entry.track.title, "history")
        self._persist_cursor()
        return entry

    def play_next(self) -> QueueEntry | None:
        history_length = len(self._model.history)
        entry = self._model.play_next()
        if entry is None:
            logger.debug(LogTemplates.QUEUE_NAVIGATION_EMPTY, "next")
            return None

        if len(self._model.history) > history_length:
            logger.info(LogTemplates.QUEUE_PLAYING, entry.track.title, "queue")
            self._persist("move_to_history", lambda: self._repo.move_to_history(entry.id))
        else:
            logger.info(LogTemplates.QUEUE_PLAYING, entry.track.title, "history")
        self._persist_cursor()
        return entry

    def play_previous(self) -> QueueEntry | None:
        entry = self._model.play_previous()
        if entry is None:
            logger.debug(LogTemplates.QUEUE_NAVIGATION_EMPTY, "previous")
            return None

        logger.info(LogTemplates.QUEUE_PLAYING, entry.track.title, "history")
        self._persist_cursor()
        return entry

    def _persist_cursor(self) -> None:
        index = self._model.persisted_history_index
        self._persist("set_history_index", lambda: self._repo.set_history_index(index))

