"""Clock abstraction for timer-driven components.

Background loops sleep through a ``Clock`` instead of calling ``asyncio.sleep``
directly, so tests can drive them with ``VirtualClock`` and no wall-clock waits.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Time source plus cooperative sleep."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Wall-clock implementation backed by the running event loop."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class VirtualClock:
    """Manually advanced clock for deterministic tests.

    Sleepers are parked on futures and released in wake-time order by
    ``advance()``. Cancelled sleepers are skipped.

    Example:
        >>> clock = VirtualClock(datetime(2024, 3, 1, 9, tzinfo=timezone.utc))
        >>> await clock.advance(30)  # runs every timer due in the next 30 s
    """

    # Event loop turns granted to woken tasks before the next wake-up
    SETTLE_ITERATIONS = 10

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._sleepers: list[tuple[datetime, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    @property
    def pending(self) -> int:
        """Number of sleepers still waiting."""
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        wake_at = self._now + timedelta(seconds=max(0.0, seconds))
        heapq.heappush(self._sleepers, (wake_at, next(self._seq), fut))
        await fut

    async def settle(self) -> None:
        """Let ready tasks run until they block again."""
        for _ in range(self.SETTLE_ITERATIONS):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper due on the way."""
        target = self._now + timedelta(seconds=seconds)
        await self.settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            wake_at, _, fut = heapq.heappop(self._sleepers)
            if fut.done():
                continue
            self._now = max(self._now, wake_at)
            fut.set_result(None)
            await self.settle()
        self._now = target
