"""Fair-turn insertion policy for new queue entries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.settings import QueueSettings
    from ..interfaces.fair_ranking import FairPositionRanker

logger = logging.getLogger(__name__)


class FairInsertionPolicy:
    """Decides whether a new entry is appended or moved to a ranked position.

    The ranker is consulted only when fair queueing is enabled and an active
    singer is set; otherwise the entry simply stays where it was appended.
    """

    def __init__(
        self,
        *,
        ranker: FairPositionRanker,
        active_singer: Callable[[], int | None],
        settings: QueueSettings | None = None,
    ) -> None:
        self._ranker = ranker
        self._active_singer = active_singer
        self._enabled = settings.fair_queue_enabled if settings else False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    async def target_position(self) -> int | None:
        """Return the index the new entry should move to, or None to keep it appended.

        Ranker failures propagate; the caller decides how to degrade.
        """
        if not self._enabled:
            return None

        singer_id = self._active_singer()
        if singer_id is None:
            return None

        position = await self._ranker.compute_fair_position(singer_id)
        logger.debug(LogTemplates.FAIR_POSITION_COMPUTED, singer_id, position)
        return position
