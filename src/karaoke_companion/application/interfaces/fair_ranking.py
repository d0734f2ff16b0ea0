"""
Fair Ranking Interface

Port for the collaborator that tracks per-singer turn order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class FairPositionRanker(ABC):
    @abstractmethod
    async def compute_fair_position(self, singer_id: int) -> int:
        """Return the queue index (``0..len(queue)``) where the singer's next song belongs."""
        ...
