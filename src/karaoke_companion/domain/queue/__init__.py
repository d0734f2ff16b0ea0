"""
Queue Bounded Context

Play-order bookkeeping: the pending queue, play history and its cursor.
"""

from karaoke_companion.domain.queue.entities import QueueEntry, Track, TrackSource
from karaoke_companion.domain.queue.play_queue import HISTORY_TIP_INDEX, PlayQueue, QueueSnapshot
from karaoke_companion.domain.queue.repository import QueueRepository

__all__ = [
    # Entities
    "Track",
    "TrackSource",
    "QueueEntry",
    # Aggregate
    "PlayQueue",
    "QueueSnapshot",
    "HISTORY_TIP_INDEX",
    # Repository
    "QueueRepository",
]
