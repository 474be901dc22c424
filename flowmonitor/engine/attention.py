"""
Attention Estimator — pointer-position heuristic for a six-class attention
distribution, smoothed over time into an engagement scalar.

This is a stand-in for a camera-based perceptual classifier. Corner proximity
of the pointer drives four classes and distance from the centre drives the
other two. It is deterministic and bounded, but it does not measure real
attention, so nothing user-facing should claim that it does.

Two distributions coexist: `target` (recomputed from the latest position)
and `display` (moved toward target once per tick with a little noise).
"""

from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class AttentionClass(str, Enum):
    ACTIVELY_LOOKING = "Actively Looking"
    CONFUSED = "Confused"
    TALKING_TO_PEERS = "Talking to Peers"
    DISTRACTED = "Distracted"
    BORED = "Bored"
    DROWSY = "Drowsy"


CLASSES: Tuple[AttentionClass, ...] = tuple(AttentionClass)

ENGAGEMENT_WEIGHTS: Dict[AttentionClass, float] = {
    AttentionClass.ACTIVELY_LOOKING: 1.0,
    AttentionClass.CONFUSED: 0.6,
    AttentionClass.TALKING_TO_PEERS: 0.5,
    AttentionClass.DISTRACTED: 0.3,
    AttentionClass.BORED: 0.2,
    AttentionClass.DROWSY: 0.1,
}

# corner-driven classes and the corner each one is anchored to
CORNER_SCALES = {
    AttentionClass.ACTIVELY_LOOKING: 0.85,  # top-left
    AttentionClass.DISTRACTED: 0.75,        # top-right
    AttentionClass.TALKING_TO_PEERS: 0.65,  # bottom-left
    AttentionClass.DROWSY: 0.7,             # bottom-right
}
CONFUSED_SCALE = 0.2
BORED_SCALE = 0.15
WEIGHT_FLOOR = 0.03
MAX_CORNER_DISTANCE = math.sqrt(2.0)

DEFAULT_EXPONENT = 3.0
DEFAULT_SMOOTHING = 0.15
DEFAULT_NOISE_AMPLITUDE = 0.01

Distribution = Dict[AttentionClass, float]


def uniform_distribution() -> Distribution:
    p = 1.0 / len(CLASSES)
    return {c: p for c in CLASSES}


def _to_array(dist: Distribution) -> np.ndarray:
    return np.array([dist[c] for c in CLASSES], dtype=float)


def _from_array(values: np.ndarray) -> Distribution:
    return {c: float(v) for c, v in zip(CLASSES, values)}


def _normalize(values: np.ndarray) -> np.ndarray:
    values = np.clip(values, 0.0, None)
    total = values.sum()
    if total <= 0 or not np.isfinite(total):
        return np.full(len(CLASSES), 1.0 / len(CLASSES))
    return values / total


def target_distribution(
    x: float,
    y: float,
    width: float,
    height: float,
    exponent: float = DEFAULT_EXPONENT,
) -> Distribution:
    """Corner-weighted distribution for a pointer at (x, y) in a width×height viewport."""
    if not all(math.isfinite(v) for v in (x, y, width, height)) or width <= 0 or height <= 0:
        return uniform_distribution()

    nx = min(max(x / width, 0.0), 1.0)
    ny = min(max(y / height, 0.0), 1.0)

    def corner_score(cx: float, cy: float) -> float:
        return 1.0 - math.hypot(nx - cx, ny - cy) / MAX_CORNER_DISTANCE

    weights = {
        AttentionClass.ACTIVELY_LOOKING: corner_score(0.0, 0.0),
        AttentionClass.DISTRACTED: corner_score(1.0, 0.0),
        AttentionClass.TALKING_TO_PEERS: corner_score(0.0, 1.0),
        AttentionClass.DROWSY: corner_score(1.0, 1.0),
    }
    weights = {c: s ** exponent * CORNER_SCALES[c] + WEIGHT_FLOOR for c, s in weights.items()}
    weights[AttentionClass.CONFUSED] = (1.0 - abs(nx - 0.5)) * CONFUSED_SCALE + WEIGHT_FLOOR
    weights[AttentionClass.BORED] = (1.0 - abs(ny - 0.5)) * BORED_SCALE + WEIGHT_FLOOR

    return _from_array(_normalize(np.array([weights[c] for c in CLASSES])))


def smooth(
    previous: Distribution,
    target: Distribution,
    factor: float,
    noise: Sequence[float],
) -> Distribution:
    """One exponential-smoothing step from previous toward target, plus noise."""
    prev = _to_array(previous)
    step = prev + (_to_array(target) - prev) * factor + np.asarray(noise, dtype=float)
    return _from_array(_normalize(step))


def engagement(dist: Distribution) -> float:
    value = sum(dist[c] * ENGAGEMENT_WEIGHTS[c] for c in CLASSES)
    return min(1.0, max(0.0, value))


class AttentionEstimator:
    """Holds target/display distributions and advances them one tick at a time."""

    def __init__(
        self,
        exponent: float = DEFAULT_EXPONENT,
        smoothing_factor: float = DEFAULT_SMOOTHING,
        noise_amplitude: float = DEFAULT_NOISE_AMPLITUDE,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.exponent = exponent
        self.smoothing_factor = smoothing_factor
        self.noise_amplitude = noise_amplitude
        self.rng = rng or random.Random()
        self.target: Distribution = uniform_distribution()
        self.display: Distribution = uniform_distribution()
        self.has_signal = False

    def observe(self, x: float, y: float, width: float, height: float) -> Distribution:
        """Recompute the target from a new pointer position."""
        self.target = target_distribution(x, y, width, height, self.exponent)
        if not self.has_signal:
            # first sample snaps the display to the target
            self.display = dict(self.target)
            self.has_signal = True
        return self.target

    def step(self) -> Distribution:
        half = self.noise_amplitude / 2.0
        noise = [self.rng.uniform(-half, half) for _ in CLASSES]
        self.display = smooth(self.display, self.target, self.smoothing_factor, noise)
        return self.display

    def engagement(self) -> float:
        return engagement(self.display)

    def predicted_class(self) -> AttentionClass:
        return max(CLASSES, key=lambda c: self.display[c])

    def confidence(self) -> float:
        return self.display[self.predicted_class()]

    def reset(self) -> None:
        self.target = uniform_distribution()
        self.display = uniform_distribution()
        self.has_signal = False
