"""
Deferred, cancellable callbacks.

The player never sleeps or polls. Work that must happen later (debounced
snapshot writes, payload delivery and its retry) is handed to a Scheduler:

- CooperativeScheduler: keeps a timer heap and runs whatever is due when the
  host calls ``run_pending()``. The clock is injectable, so tests can
  ``advance()`` time without waiting.
- AsyncioScheduler: delegates to ``loop.call_later`` for hosts that already
  run an event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Callable
from typing import Any, Protocol

from loguru import logger


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """Protocol for deferred callback scheduling."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` after ``delay`` seconds. Returns a cancellable handle."""
        ...


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _Timer:
    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self._cancelled = False

    def __lt__(self, other: "_Timer") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class CooperativeScheduler:
    """Timer heap drained by explicit ``run_pending()`` calls."""

    def __init__(self, clock: Callable[[], float] | None = None):
        self.clock = clock or time.monotonic
        self._timers: list[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _Timer:
        timer = _Timer(self.clock() + max(0.0, delay), next(self._seq), callback, args)
        heapq.heappush(self._timers, timer)
        return timer

    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for t in self._timers if not t.cancelled())

    def next_due(self) -> float | None:
        """Seconds until the next live timer fires, or None if idle."""
        live = [t.when for t in self._timers if not t.cancelled()]
        if not live:
            return None
        return max(0.0, min(live) - self.clock())

    def run_pending(self) -> int:
        """Run every timer that is due. Returns how many callbacks ran."""
        ran = 0
        now = self.clock()
        while self._timers and self._timers[0].when <= now:
            timer = heapq.heappop(self._timers)
            if timer.cancelled():
                continue
            timer.cancel()
            timer.callback(*timer.args)
            ran += 1
        return ran

    def advance(self, seconds: float) -> int:
        """Move a ManualClock forward and run what became due."""
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() needs a ManualClock")
        self.clock.advance(seconds)
        return self.run_pending()

    def cancel_all(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        logger.debug("Cancelled all scheduled timers")


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)
