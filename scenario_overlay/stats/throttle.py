"""
Timer scheduling and the leading/trailing throttle used for stats updates.

The throttle never owns an event loop. It runs on a Scheduler: the asyncio
one in the application, a manual clock in tests and offline replay.
"""

import asyncio
import heapq
import itertools
import logging
import math
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# ⏱️ SCHEDULERS
# ═══════════════════════════════════════════════════════════════════════════


class Scheduler:
    """Clock plus one-shot timers. Handles returned by call_later have cancel()."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    """Scheduler on the running asyncio event loop (resolved lazily)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback)


class ManualTimer:
    """Timer handle for ManualScheduler."""

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """
    Deterministic scheduler driven by advance().

    Timers fire in deadline order (ties in creation order) and see now()
    equal to their own deadline.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.when, next(self._sequence), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers. Returns timers fired."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
            fired += 1
        self._now = target
        return fired


# ═══════════════════════════════════════════════════════════════════════════
# 🚦 THROTTLE
# ═══════════════════════════════════════════════════════════════════════════


class Throttle:
    """
    Leading/trailing throttle.

    trigger(): if interval_s has elapsed since the last run, run now and
    restart the window; otherwise schedule one trailing run at the end of
    the window, replacing any trailing run already scheduled.

    Args:
        interval_s: Minimum seconds between runs
        callback: Work to run
        scheduler: Clock and timer source
    """

    def __init__(
        self,
        interval_s: float,
        callback: Callable[[], None],
        scheduler: Scheduler,
    ) -> None:
        self.interval_s = interval_s
        self._callback = callback
        self._scheduler = scheduler
        self._last_run = -math.inf
        self._trailing: Any = None

    @property
    def has_pending(self) -> bool:
        return self._trailing is not None

    def trigger(self) -> None:
        now = self._scheduler.now()
        elapsed = now - self._last_run
        if elapsed >= self.interval_s:
            self.cancel()
            self._run()
            return

        self.cancel()
        self._trailing = self._scheduler.call_later(
            self.interval_s - elapsed, self._run_trailing
        )

    def flush(self) -> None:
        """Run now, dropping any scheduled trailing run."""
        self.cancel()
        self._run()

    def cancel(self) -> None:
        if self._trailing is not None:
            self._trailing.cancel()
            self._trailing = None

    def _run_trailing(self) -> None:
        self._trailing = None
        self._run()

    def _run(self) -> None:
        self._last_run = self._scheduler.now()
        self._callback()
