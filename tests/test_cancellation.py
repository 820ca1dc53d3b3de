"""Tests for the cooperative cancellation token."""

import asyncio

import pytest

from profile_scraper_pkg.cancellation import CancelToken
from profile_scraper_pkg.errors import ScrapeCancelled


class TestCancelToken:
    @pytest.mark.asyncio
    async def test_cancel_interrupts_inflight_sleep(self) -> None:
        # Given: A task sleeping for a long time
        token = CancelToken()
        task = asyncio.create_task(token.sleep(60))
        await asyncio.sleep(0)

        # When: The token is cancelled
        token.cancel("operator")

        # Then: The sleep ends promptly with ScrapeCancelled
        with pytest.raises(ScrapeCancelled, match="operator"):
            await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_sleep_refused_after_cancel(self) -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(ScrapeCancelled):
            await token.sleep(0)

    @pytest.mark.asyncio
    async def test_short_sleep_completes(self) -> None:
        token = CancelToken()
        await token.sleep(0.01)
        assert token.cancelled is False

    @pytest.mark.asyncio
    async def test_sleep_between_stays_in_bounds(self, token) -> None:
        seconds = await token.sleep_between((2.0, 3.0))
        assert 2.0 <= seconds <= 3.0
        assert token.waits == [seconds]

    def test_first_reason_wins(self) -> None:
        token = CancelToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"


class TestPauseGate:
    @pytest.mark.asyncio
    async def test_waiters_block_until_pause_ends(self) -> None:
        # Given: One task holding the run paused
        token = CancelToken()
        release = asyncio.Event()

        async def hold():
            async with token.paused():
                await release.wait()

        holder = asyncio.create_task(hold())
        await asyncio.sleep(0)
        waiter = asyncio.create_task(token.wait_if_paused())

        # When: The loop runs for a while
        for _ in range(10):
            await asyncio.sleep(0)

        # Then: The waiter is parked until the holder lets go
        assert token.is_paused is True
        assert waiter.done() is False
        release.set()
        await asyncio.wait_for(asyncio.gather(holder, waiter), timeout=1)
        assert token.is_paused is False

    @pytest.mark.asyncio
    async def test_second_pause_queues_behind_first(self) -> None:
        token = CancelToken()
        release = asyncio.Event()
        order = []

        async def hold(name, until=None):
            async with token.paused():
                order.append(f"{name}-in")
                if until is not None:
                    await until.wait()
                order.append(f"{name}-out")

        first = asyncio.create_task(hold("first", release))
        await asyncio.sleep(0)
        second = asyncio.create_task(hold("second"))
        await asyncio.sleep(0)
        assert order == ["first-in"]

        release.set()
        await asyncio.wait_for(asyncio.gather(first, second), timeout=1)
        assert order == ["first-in", "first-out", "second-in", "second-out"]

    @pytest.mark.asyncio
    async def test_cancel_releases_paused_waiters(self) -> None:
        token = CancelToken()
        release = asyncio.Event()

        async def hold():
            async with token.paused():
                await release.wait()

        holder = asyncio.create_task(hold())
        await asyncio.sleep(0)
        waiter = asyncio.create_task(token.wait_if_paused())
        await asyncio.sleep(0)

        token.cancel("operator")

        with pytest.raises(ScrapeCancelled):
            await asyncio.wait_for(waiter, timeout=1)
        release.set()
        await holder

    @pytest.mark.asyncio
    async def test_wait_if_paused_returns_at_once_when_running(self) -> None:
        token = CancelToken()
        await asyncio.wait_for(token.wait_if_paused(), timeout=1)
