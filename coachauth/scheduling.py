"""
Clocks, cooldowns and periodic tasks.

Every timer in coachauth goes through a ``Clock`` so that tests can swap in
``ManualClock`` and advance virtual time instead of sleeping.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Clock:
    """Wall clock plus monotonic clock plus sleep."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class SystemClock(Clock):
    """Real time. Default for every component."""


class ManualClock(Clock):
    """
    Virtual clock driven by ``advance()``.

    ``sleep()`` suspends until enough virtual time has been advanced.

    Example:
        ```python
        clock = ManualClock()
        cooldown = Cooldown(clock)
        cooldown.start(60)
        await clock.advance(60)
        assert not cooldown.active
        ```
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._wall = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed = 0.0
        self._sleepers: List[Tuple[float, asyncio.Future]] = []

    def now(self) -> datetime:
        return self._wall + timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._elapsed + seconds, future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward and wake every sleeper whose deadline passed."""
        self._elapsed += seconds
        due = [(t, f) for t, f in self._sleepers if t <= self._elapsed]
        self._sleepers = [(t, f) for t, f in self._sleepers if t > self._elapsed]
        for _, future in due:
            if not future.done():
                future.set_result(None)
        # Let woken tasks run until their next suspension point
        for _ in range(5):
            await asyncio.sleep(0)


class Cooldown:
    """Time-based rate limit: a deadline on a clock."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._deadline: Optional[float] = None

    def start(self, seconds: float) -> None:
        self._deadline = self._clock.monotonic() + seconds

    def clear(self) -> None:
        self._deadline = None

    @property
    def remaining(self) -> int:
        """Whole seconds left, rounded up, as shown in a countdown."""
        if self._deadline is None:
            return 0
        left = self._deadline - self._clock.monotonic()
        if left <= 0:
            self._deadline = None
            return 0
        return math.ceil(left)

    @property
    def active(self) -> bool:
        return self.remaining > 0


class PeriodicTask:
    """
    Runs an async callback every ``interval`` seconds until stopped.

    Errors raised by the callback are logged and the loop keeps going.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval: float,
        clock: Optional[Clock] = None,
        name: str = "periodic-task",
    ) -> None:
        self._callback = callback
        self._interval = interval
        self._clock = clock or SystemClock()
        self._name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await self._clock.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s tick failed", self._name)
