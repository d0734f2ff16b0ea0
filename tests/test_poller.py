"""Tests for the hosted-session poll timer."""

import asyncio

import pytest

from karaoke_companion.application.services.poller import HostedSessionPoller


class TestHostedSessionPoller:
    """Tests for start/cancel hygiene and tick behaviour."""

    @pytest.mark.asyncio
    async def test_ticks_until_cancelled(self):
        ticks = 0

        async def tick():
            nonlocal ticks
            ticks += 1

        poller = HostedSessionPoller(interval_seconds=0.01, callback=tick)
        poller.start()
        await asyncio.sleep(0.055)
        poller.cancel()
        seen = ticks
        await asyncio.sleep(0.03)

        assert seen >= 2
        assert ticks == seen
        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_restart_cancels_previous_task(self):
        async def tick():
            return None

        poller = HostedSessionPoller(interval_seconds=60.0, callback=tick)
        poller.start()
        first = poller._task
        poller.start()
        await asyncio.sleep(0)

        assert first.cancelled() or first.done()
        assert poller.is_running
        assert poller.cancelled_timers == 1
        poller.cancel()

    @pytest.mark.asyncio
    async def test_cancel_without_task_is_not_counted(self):
        async def tick():
            return None

        poller = HostedSessionPoller(interval_seconds=60.0, callback=tick)
        poller.cancel()
        poller.cancel()

        assert poller.cancelled_timers == 0

    @pytest.mark.asyncio
    async def test_tick_failure_keeps_polling(self):
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            raise RuntimeError("relay down")

        poller = HostedSessionPoller(interval_seconds=0.01, callback=flaky)
        poller.start()
        await asyncio.sleep(0.055)

        assert calls >= 2
        assert poller.is_running
        poller.cancel()

    @pytest.mark.asyncio
    async def test_cancel_from_inside_a_tick_lets_the_tick_finish(self):
        finished = []
        poller = None

        async def tick():
            poller.cancel()
            await asyncio.sleep(0)
            finished.append(True)

        poller = HostedSessionPoller(interval_seconds=0.01, callback=tick)
        poller.start()
        await asyncio.sleep(0.05)

        assert finished == [True]
        assert not poller.is_running
        assert poller.cancelled_timers == 1

    @pytest.mark.asyncio
    async def test_cancel_after_task_finished_is_not_counted(self):
        async def tick():
            raise asyncio.CancelledError

        poller = HostedSessionPoller(interval_seconds=0.01, callback=tick)
        poller.start()
        await asyncio.sleep(0.05)
        poller.cancel()

        assert poller.cancelled_timers == 0
