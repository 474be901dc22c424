"""
QTimer-backed Scheduler so engine callbacks run on the Qt event loop
(safe for touching widgets from the monitor's callbacks).
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Set

from PySide6.QtCore import QTimer

from flowmonitor.engine.clock import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class QtScheduler(Scheduler):
    def __init__(self) -> None:
        # QTimers must stay referenced or Python will collect them mid-flight
        self._timers: Set[QTimer] = set()

    def now(self) -> float:
        return time.time() * 1000.0

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer()
        timer.setInterval(max(1, int(interval_ms)))
        timer.timeout.connect(callback)
        self._timers.add(timer)
        timer.start()
        return TimerHandle(on_cancel=lambda: self._release(timer))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer()
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))
        handle = TimerHandle(on_cancel=lambda: self._release(timer))

        def fire() -> None:
            handle.active = False
            self._release(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start()
        return handle

    def defer(self, callback: Callable[[], None]) -> None:
        QTimer.singleShot(0, callback)

    def _release(self, timer: QTimer) -> None:
        timer.stop()
        self._timers.discard(timer)
