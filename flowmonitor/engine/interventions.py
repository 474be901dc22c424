"""
Intervention Policy — decides whether a tick warrants a wellness prompt.

Stateless. Rules are checked in priority order and the first match wins, so
one tick yields at most one event. Suppressing repeats is the caller's job.
"""

from __future__ import annotations

from typing import Optional

from .models import InterventionEvent, InterventionKind, MetricsSnapshot

FATIGUE_MAX_TYPING_RATE = 30.0
FATIGUE_MIN_BACKSPACE_RATE = 12.0
EYE_STRAIN_MAX_IDLE_S = 2.0
EYE_STRAIN_MIN_SCORE = 70.0
DISTRACTION_MIN_TAB_SWITCHES = 15

FATIGUE_REASON = "Signs of fatigue detected. Time for a break."
EYE_STRAIN_REASON = "You've been focused for a while. Try the 20-20-20 rule."
DISTRACTION_REASON = "High distraction detected. Take a moment to breathe."


def evaluate(
    snapshot: MetricsSnapshot,
    score: float,
    now: Optional[float] = None,
) -> Optional[InterventionEvent]:
    triggered_at = snapshot.taken_at if now is None else now

    if (snapshot.typing_rate_per_minute < FATIGUE_MAX_TYPING_RATE
            and snapshot.backspace_rate_per_minute > FATIGUE_MIN_BACKSPACE_RATE):
        return InterventionEvent(InterventionKind.FATIGUE, FATIGUE_REASON, triggered_at)

    if snapshot.idle_seconds < EYE_STRAIN_MAX_IDLE_S and score > EYE_STRAIN_MIN_SCORE:
        return InterventionEvent(InterventionKind.EYE_STRAIN, EYE_STRAIN_REASON, triggered_at)

    if snapshot.tab_switch_count > DISTRACTION_MIN_TAB_SWITCHES:
        return InterventionEvent(InterventionKind.DISTRACTION, DISTRACTION_REASON, triggered_at)

    return None
