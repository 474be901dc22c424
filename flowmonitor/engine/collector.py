"""
Signal Collector — accumulates raw interaction counters for the current window.

record() is the whole contract: it bumps counters and appends to two bounded
ring buffers (keystroke timestamps, pointer samples). Buffers evict their
oldest entry when full. Bad payloads are dropped without touching state.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from numbers import Real
from typing import Callable, Deque, List, Optional, Tuple

from .events import EventKind, EventSource, InputEvent, Unsubscribe

logger = logging.getLogger(__name__)

PointerSample = Tuple[float, float, float]  # (x, y, timestamp_ms)

DEFAULT_KEYSTROKE_CAPACITY = 100
DEFAULT_POINTER_CAPACITY = 50
FUTURE_TOLERANCE_MS = 1000.0


def _finite(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


class SignalCollector:
    """Raw counters and ring buffers for one aggregation window."""

    def __init__(
        self,
        clock: Callable[[], float],
        keystroke_capacity: int = DEFAULT_KEYSTROKE_CAPACITY,
        pointer_capacity: int = DEFAULT_POINTER_CAPACITY,
    ) -> None:
        self._clock = clock
        self.key_count = 0
        self.backspace_count = 0
        self.tab_switch_count = 0
        self.keystroke_times: Deque[float] = deque(maxlen=keystroke_capacity)
        self.pointer_trace: Deque[PointerSample] = deque(maxlen=pointer_capacity)
        self.last_activity: float = clock()
        self.discarded = 0
        self._unsubscribers: List[Unsubscribe] = []

    # ── Event intake ────────────────────────────────────────────────────────

    def record(self, event: InputEvent) -> None:
        if not isinstance(event, InputEvent):
            self.discarded += 1
            return
        now = self._clock()
        ts = event.timestamp if _finite(event.timestamp) else now
        if ts > now + FUTURE_TOLERANCE_MS:
            self.discarded += 1
            logger.debug("Dropped %s event stamped %.0f ms ahead of the clock.",
                         event.kind, ts - now)
            return
        kind = event.kind

        if kind == EventKind.KEY_DOWN:
            if event.key is not None and not isinstance(event.key, str):
                self.discarded += 1
                return
            self.key_count += 1
            if event.is_backspace:
                self.backspace_count += 1
            self.keystroke_times.append(ts)
            self._touch(ts)

        elif kind == EventKind.POINTER_MOVE:
            if not (_finite(event.x) and _finite(event.y)):
                self.discarded += 1
                return
            self.pointer_trace.append((float(event.x), float(event.y), ts))
            self._touch(ts)

        elif kind == EventKind.POINTER_CLICK:
            self._touch(ts)

        elif kind == EventKind.VISIBILITY_CHANGE:
            if not isinstance(event.hidden, bool):
                self.discarded += 1
                return
            if event.hidden:
                self.tab_switch_count += 1

        elif kind == EventKind.WINDOW_BLUR:
            self.tab_switch_count += 1

        else:
            self.discarded += 1

    def _touch(self, ts: float) -> None:
        # late-arriving events never move last activity backwards
        if ts > self.last_activity:
            self.last_activity = ts

    # ── Source wiring ───────────────────────────────────────────────────────

    def attach(self, source: EventSource) -> None:
        """Subscribe record() to every event kind on source."""
        self.detach()
        for kind in EventKind:
            self._unsubscribers.append(source.subscribe(kind, self.record))

    def detach(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    @property
    def attached(self) -> bool:
        return bool(self._unsubscribers)

    # ── Resets ──────────────────────────────────────────────────────────────

    def reset_window(self) -> None:
        """Clear per-window counters. Keystroke timestamps survive."""
        self.key_count = 0
        self.backspace_count = 0
        self.tab_switch_count = 0
        self.pointer_trace.clear()

    def reset(self, now: Optional[float] = None) -> None:
        """Clear everything, including the rhythm buffer."""
        self.reset_window()
        self.keystroke_times.clear()
        self.discarded = 0
        self.last_activity = self._clock() if now is None else now
