"""
Scheduler/clock abstraction for the engine.

The engine never touches wall-clock timers directly. It asks a Scheduler for
"now" (milliseconds), periodic callbacks, one-shot callbacks, and deferred
work that must run on a later event-loop turn. ManualScheduler drives all of
that from virtual time so runs are deterministic; ui.qt_scheduler provides
the QTimer-backed version for the desktop app.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle:
    """Returned by call_every/call_later; cancel() is idempotent."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self.active = True
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_cancel:
            self._on_cancel()


class Scheduler:
    """Interface the engine schedules against."""

    def now(self) -> float:
        raise NotImplementedError

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def defer(self, callback: Callable[[], None]) -> None:
        """Run callback on a later turn of the event loop, never inline."""
        raise NotImplementedError


class _Timer:
    __slots__ = ("handle", "interval", "callback", "repeat")

    def __init__(self, handle: TimerHandle, interval: float,
                 callback: Callable[[], None], repeat: bool) -> None:
        self.handle = handle
        self.interval = interval
        self.callback = callback
        self.repeat = repeat


class ManualScheduler(Scheduler):
    """
    Virtual-time scheduler. Nothing happens until advance() is called.

    Timers fire in due-time order; timers due at the same instant fire in
    registration order. Deferred callbacks are drained before the first timer
    and after every timer callback.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self._queue: List[Tuple[float, int, _Timer]] = []
        self._seq = itertools.count()
        self._deferred: Deque[Callable[[], None]] = deque()

    def now(self) -> float:
        return self._now

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        return self._schedule(interval_ms, callback, repeat=True)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self._schedule(max(0.0, delay_ms), callback, repeat=False)

    def defer(self, callback: Callable[[], None]) -> None:
        self._deferred.append(callback)

    def advance(self, ms: float) -> None:
        """Move virtual time forward by ms, firing everything that comes due."""
        target = self._now + ms
        self.run_pending()
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if not timer.handle.active:
                continue
            self._now = due
            if timer.repeat:
                heapq.heappush(self._queue, (due + timer.interval, next(self._seq), timer))
            else:
                timer.handle.active = False
            timer.callback()
            self.run_pending()
        self._now = target

    def run_pending(self) -> None:
        while self._deferred:
            self._deferred.popleft()()

    @property
    def active_timer_count(self) -> int:
        return sum(1 for _, _, t in self._queue if t.handle.active)

    def _schedule(self, interval: float, callback: Callable[[], None],
                  repeat: bool) -> TimerHandle:
        handle = TimerHandle()
        timer = _Timer(handle, interval, callback, repeat)
        heapq.heappush(self._queue, (self._now + interval, next(self._seq), timer))
        return handle
