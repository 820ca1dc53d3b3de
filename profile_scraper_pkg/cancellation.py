import asyncio
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from .errors import ScrapeCancelled


class CancelToken:
    """Cooperative cancellation and run-wide pausing shared by every worker.

    Every pause (network-idle windows excepted) goes through `sleep()`, so a
    cancelled token interrupts an in-flight wait immediately and refuses to
    start a new one. Callers release their own resources when they see
    `ScrapeCancelled`.

    `paused()` holds the whole run still: while one worker is inside it,
    the others block in `wait_if_paused()` before their next fetch, write or
    inter-item sleep. Only one holder at a time; a second one queues.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._pause_lock = asyncio.Lock()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def is_paused(self) -> bool:
        return not self._resumed.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
            # Release anyone parked on the pause gate so they see the cancellation.
            self._resumed.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScrapeCancelled(self.reason or "cancelled")

    @asynccontextmanager
    async def paused(self) -> AsyncIterator[None]:
        async with self._pause_lock:
            self.raise_if_cancelled()
            self._resumed.clear()
            try:
                yield
            finally:
                self._resumed.set()

    async def wait_if_paused(self) -> None:
        self.raise_if_cancelled()
        if not self._resumed.is_set():
            await self._resumed.wait()
        self.raise_if_cancelled()

    async def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        if seconds > 0:
            await self._wait(seconds)
        self.raise_if_cancelled()

    async def sleep_between(self, bounds: Tuple[float, float]) -> float:
        """Sleep a uniformly random duration within `bounds`; return it."""
        seconds = random.uniform(*bounds)
        await self.sleep(seconds)
        return seconds

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
