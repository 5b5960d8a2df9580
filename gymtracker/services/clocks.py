"""
Interval-driven session clocks.

Both clocks are driven by a Scheduler that fires a callback every interval.
AsyncioScheduler uses the running event loop; ManualScheduler keeps virtual
time that tests advance explicitly. The two clocks share a scheduler but hold
separate handles, so stopping one never affects the other.
"""

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Callable
from typing import Protocol

from gymtracker.config import DEFAULT_REST_SEC, FALLBACK_REST_SEC, TICK_INTERVAL_SEC

logger = logging.getLogger(__name__)


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


# ---------------------------------------------------------------------------
# Schedulers
# ---------------------------------------------------------------------------


class _AsyncioRepeat:
    def __init__(self, interval: float, callback: Callable[[], None]):
        self._interval = interval
        self._callback = callback
        self._loop = asyncio.get_running_loop()
        self._handle: asyncio.TimerHandle | None = self._loop.call_later(interval, self._fire)
        self._cancelled = False

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Real-time ticks on the running asyncio loop.

    Each call_every binds to whichever loop is running at the time of the call.
    """

    def now(self) -> float:
        return time.monotonic()

    def call_every(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        return _AsyncioRepeat(interval, callback)


class _ManualRepeat:
    def __init__(self, interval: float):
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual time. Nothing fires until advance() moves the clock forward."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, _ManualRepeat, Callable[[], None]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_every(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        handle = _ManualRepeat(interval)
        heapq.heappush(self._queue, (self._now + interval, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds: float) -> None:
        """Move virtual time forward, firing every due tick in order."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            heapq.heappush(self._queue, (due + handle.interval, next(self._seq), handle, callback))
            callback()
        self._now = target


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------


class ElapsedClock:
    """Count-up stopwatch sampled once per tick."""

    def __init__(self, scheduler: Scheduler, interval: float = TICK_INTERVAL_SEC):
        self._scheduler = scheduler
        self._interval = interval
        self._handle: TickHandle | None = None
        self._started_at: float | None = None
        self.elapsed_ms = 0
        self.on_tick: list[Callable[[int], None]] = []

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.reset()
        self._started_at = self._scheduler.now()
        self._handle = self._scheduler.call_every(self._interval, self._tick)

    def stop(self) -> None:
        if self._handle is None:
            return
        self._sample()
        self._handle.cancel()
        self._handle = None

    def resume(self) -> None:
        """Tick again after stop(), still measuring from the original start."""
        if self._handle is not None or self._started_at is None:
            return
        self._handle = self._scheduler.call_every(self._interval, self._tick)

    def reset(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._started_at = None
        self.elapsed_ms = 0

    def _sample(self) -> None:
        if self._started_at is not None:
            self.elapsed_ms = max(0, round((self._scheduler.now() - self._started_at) * 1000))

    def _tick(self) -> None:
        self._sample()
        for callback in self.on_tick:
            callback(self.elapsed_ms)


class RestClock:
    """Countdown between sets.

    The target persists across rests; start() without an argument reuses it.
    Reaching zero stops ticking and fires on_complete once.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        target: int = DEFAULT_REST_SEC,
        interval: float = TICK_INTERVAL_SEC,
    ):
        self._scheduler = scheduler
        self._interval = interval
        self._handle: TickHandle | None = None
        self.target = target
        self.remaining = target
        self.on_tick: list[Callable[[int], None]] = []
        self.on_complete: list[Callable[[], None]] = []

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, target: int | None = None) -> None:
        """(Re)start the countdown, cancelling any rest in progress."""
        if target is not None:
            self.target = target
        self.target = self.target or FALLBACK_REST_SEC
        self._cancel()
        self.remaining = self.target
        self._handle = self._scheduler.call_every(self._interval, self._tick)

    def change_preset(self, target: int) -> None:
        self.target = target
        if self.running:
            self.start()
        else:
            self.remaining = target

    def stop(self) -> None:
        self._cancel()

    skip = stop

    def reset(self) -> None:
        self._cancel()
        self.remaining = self.target

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self._cancel()
            for callback in self.on_tick:
                callback(self.remaining)
            logger.info("Rest of %ss complete", self.target)
            for callback in self.on_complete:
                callback()
            return
        for callback in self.on_tick:
            callback(self.remaining)
