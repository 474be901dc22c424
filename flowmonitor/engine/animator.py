"""Display-side easing of the flow score, plus the level label shown with it."""

from __future__ import annotations

from typing import List, Tuple

EASING = 0.1
SNAP_THRESHOLD = 1.0

FLOW_LEVELS: List[Tuple[float, str]] = [
    (80.0, "Deep Flow"),
    (60.0, "Flow"),
    (40.0, "Focused"),
]
LOWEST_LEVEL = "Distracted"


def flow_level(score: float) -> str:
    for threshold, label in FLOW_LEVELS:
        if score >= threshold:
            return label
    return LOWEST_LEVEL


class ScoreAnimator:
    """Moves the displayed score 10% of the way to the live score per frame."""

    def __init__(self, initial: float = 0.0) -> None:
        self.displayed = initial
        self.target = initial

    def set_target(self, score: float) -> None:
        self.target = score

    def step(self) -> float:
        diff = self.target - self.displayed
        if abs(diff) < SNAP_THRESHOLD:
            self.displayed = self.target
        else:
            self.displayed += diff * EASING
        return self.displayed

    def reset(self, value: float = 0.0) -> None:
        self.displayed = value
        self.target = value
