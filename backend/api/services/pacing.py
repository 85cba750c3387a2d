"""Wait policy between consecutive gateway sends."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

SleepFunc = Callable[[float], Awaitable[None]]


class MessagePacer:
    """Fixed pause inserted between two gateway dispatches.

    ``sleep`` is injectable so tests can record waits instead of sleeping.
    """

    def __init__(self, delay: float, sleep: SleepFunc = asyncio.sleep) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self._sleep = sleep

    async def wait(self) -> None:
        if self.delay > 0:
            await self._sleep(self.delay)
