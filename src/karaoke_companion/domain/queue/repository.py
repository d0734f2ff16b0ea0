"""
Queue Domain Repository Interfaces

Abstract base classes defining the contracts for queue persistence.
All operations are scoped to the currently active session.
"""

from abc import ABC, abstractmethod

from karaoke_companion.domain.queue.entities import QueueEntry
from karaoke_companion.domain.queue.play_queue import QueueSnapshot


class QueueRepository(ABC):
    """Abstract repository for the active session's queue and history."""

    @abstractmethod
    async def get_state(self) -> QueueSnapshot | None:
        """Load queue, history and cursor.

        Returns:
            The snapshot, or None if there is no active session.
        """
        ...

    @abstractmethod
    async def add_item(self, entry: QueueEntry, position: int) -> None:
        """Append an entry to the pending queue."""
        ...

    @abstractmethod
    async def add_to_history(self, entry: QueueEntry, position: int) -> None:
        """Append an entry straight to history (direct play)."""
        ...

    @abstractmethod
    async def remove_item(self, entry_id: str) -> None:
        ...

    @abstractmethod
    async def reorder(self, entry_id: str, new_position: int) -> None:
        """Move a pending entry to a new zero-based position."""
        ...

    @abstractmethod
    async def move_to_history(self, entry_id: str) -> None:
        """Move a pending entry to the end of history."""
        ...

    @abstractmethod
    async def set_history_index(self, index: int) -> None:
        """Persist the history cursor (``-1`` for the tip)."""
        ...

    @abstractmethod
    async def clear_queue(self) -> None:
        ...

    @abstractmethod
    async def clear_history(self) -> None:
        ...

    @abstractmethod
    async def move_all_history_to_queue(self) -> None:
        ...
