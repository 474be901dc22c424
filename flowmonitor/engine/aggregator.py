"""
Aggregation Window — turns the collector's raw counters into a MetricsSnapshot.

One call to tick() per period: rates are scaled to per-minute, the pointer
trace becomes a normalized path length, idle time is measured from the last
activity, and then the per-window counters are reset.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from .collector import PointerSample, SignalCollector
from .models import MetricsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_S = 10.0
DEFAULT_POINTER_NORMALIZATION = 10.0


def path_distance(samples: Iterable[PointerSample]) -> float:
    """Sum of Euclidean distances between consecutive (x, y, t) samples."""
    pts = np.array([(x, y) for x, y, _ in samples], dtype=float)
    if len(pts) < 2:
        return 0.0
    steps = np.diff(pts, axis=0)
    return float(np.hypot(steps[:, 0], steps[:, 1]).sum())


class AggregationWindow:
    def __init__(
        self,
        collector: SignalCollector,
        period_s: float = DEFAULT_PERIOD_S,
        pointer_normalization: float = DEFAULT_POINTER_NORMALIZATION,
    ) -> None:
        if period_s <= 0:
            raise ValueError("period_s must be positive")
        if pointer_normalization <= 0:
            raise ValueError("pointer_normalization must be positive")
        self.collector = collector
        self.period_s = period_s
        self.pointer_normalization = pointer_normalization

    @property
    def period_ms(self) -> float:
        return self.period_s * 1000.0

    def tick(self, now: float) -> MetricsSnapshot:
        c = self.collector
        per_minute = 60.0 / self.period_s
        snapshot = MetricsSnapshot(
            typing_rate_per_minute=c.key_count * per_minute,
            backspace_rate_per_minute=c.backspace_count * per_minute,
            pointer_distance_per_tick=path_distance(c.pointer_trace) / self.pointer_normalization,
            tab_switch_count=c.tab_switch_count,
            idle_seconds=max(0.0, (now - c.last_activity) / 1000.0),
            taken_at=now,
        )
        c.reset_window()
        logger.debug("Aggregated window: %s", snapshot)
        return snapshot
