"""Recurring poll timer for the hosted-session health check."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class HostedSessionPoller:
    """Owns at most one recurring poll task.

    ``start`` always cancels a previous task before creating a new one, so two
    timers can never be live at the same time.
    """

    def __init__(self, *, interval_seconds: float, callback: Callable[[], Awaitable[None]]) -> None:
        self._interval = interval_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self.cancelled_timers = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(), name="hosted-session-poll")
        logger.debug(LogTemplates.POLLER_STARTED, self._interval)

    def cancel(self) -> None:
        """Stop the current poll task, if any.

        Called from inside a tick, the running task is not cancelled; it exits
        after the tick completes so the rest of the tick still runs.
        """
        task = self._task
        if task is None:
            return
        self._task = None
        if task.done():
            return
        self.cancelled_timers += 1
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug(LogTemplates.POLLER_CANCELLED)

    async def _run(self) -> None:
        current = asyncio.current_task()
        while self._task is current:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(LogTemplates.POLLER_TICK_FAILED, exc)
