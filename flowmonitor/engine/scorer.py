"""
Flow Scorer — maps a MetricsSnapshot to a bounded flow score.

The base score is a rule ladder around a baseline of 50. Each rule is
evaluated on its own and the contributions are summed. Two cross-tick
adjustments (typing rhythm bonus, long-idle penalty) are applied afterwards
by adjust(), because they need state the snapshot does not carry.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .models import MetricsSnapshot, ScoreBreakdown

BASELINE = 50.0
MIN_SCORE = 0.0
MAX_SCORE = 100.0

RHYTHM_MIN_INTERVALS = 5
RHYTHM_MAX_STD_MS = 100.0
RHYTHM_BONUS = 5.0
LONG_IDLE_SECONDS = 60.0
LONG_IDLE_PENALTY = 15.0


def clamp(value: float, lo: float = MIN_SCORE, hi: float = MAX_SCORE) -> float:
    return max(lo, min(hi, value))


# ── Rule ladder ─────────────────────────────────────────────────────────────

def typing_contribution(rate: float) -> float:
    if rate > 60:
        return 15.0
    if rate > 40:
        return 10.0
    if rate < 20:
        return -10.0
    return 0.0


def tab_switch_contribution(count: int) -> float:
    if count < 3:
        return 15.0
    if count > 10:
        return -20.0
    return 0.0


def pointer_contribution(distance: float) -> float:
    if 20 < distance < 80:
        return 10.0
    if distance > 150:
        return -15.0
    return 0.0


def backspace_contribution(rate: float) -> float:
    if rate < 5:
        return 10.0
    if rate > 15:
        return -15.0
    return 0.0


def idle_contribution(seconds: float) -> float:
    if seconds < 5:
        return 5.0
    if seconds > 30:
        return -20.0
    return 0.0


def score(snapshot: MetricsSnapshot) -> float:
    """Base flow score for one snapshot, clamped to [0, 100]."""
    total = (
        BASELINE
        + typing_contribution(snapshot.typing_rate_per_minute)
        + tab_switch_contribution(snapshot.tab_switch_count)
        + pointer_contribution(snapshot.pointer_distance_per_tick)
        + backspace_contribution(snapshot.backspace_rate_per_minute)
        + idle_contribution(snapshot.idle_seconds)
    )
    return clamp(total)


# ── Cross-tick adjustments ──────────────────────────────────────────────────

def rhythm_deviation_ms(keystroke_times: Sequence[float]) -> Optional[float]:
    """
    Standard deviation of inter-key intervals, or None when fewer than
    RHYTHM_MIN_INTERVALS intervals are available.
    """
    if len(keystroke_times) < RHYTHM_MIN_INTERVALS + 1:
        return None
    intervals = np.diff(np.asarray(keystroke_times, dtype=float))
    return float(np.std(intervals))


def adjust(
    base: float,
    snapshot: MetricsSnapshot,
    rhythm_std_ms: Optional[float] = None,
) -> ScoreBreakdown:
    bonus = RHYTHM_BONUS if rhythm_std_ms is not None and rhythm_std_ms < RHYTHM_MAX_STD_MS else 0.0
    penalty = LONG_IDLE_PENALTY if snapshot.idle_seconds > LONG_IDLE_SECONDS else 0.0
    return ScoreBreakdown(
        base=base,
        rhythm_bonus=bonus,
        idle_penalty=penalty,
        final=clamp(base + bonus - penalty),
    )


def score_with_adjustments(
    snapshot: MetricsSnapshot,
    keystroke_times: Sequence[float] = (),
) -> ScoreBreakdown:
    return adjust(score(snapshot), snapshot, rhythm_deviation_ms(keystroke_times))
