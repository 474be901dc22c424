"""
Value types shared by the monitoring engine.

Snapshots and interventions are frozen: once a tick produces one, nothing
downstream can mutate it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


class InterventionKind(str, Enum):
    FATIGUE = "fatigue"
    EYE_STRAIN = "eye_strain"
    DISTRACTION = "distraction"
    BREATHING = "breathing"
    POSTURE = "posture"
    HYDRATION = "hydration"
    GENERIC = "generic"


@dataclass(frozen=True)
class MetricsSnapshot:
    """One aggregation window's worth of normalized interaction metrics."""
    typing_rate_per_minute: float = 0.0
    backspace_rate_per_minute: float = 0.0
    pointer_distance_per_tick: float = 0.0
    tab_switch_count: int = 0
    idle_seconds: float = 0.0
    taken_at: Optional[float] = None  # ms

    def __post_init__(self) -> None:
        for name in ("typing_rate_per_minute", "backspace_rate_per_minute",
                     "pointer_distance_per_tick", "tab_switch_count",
                     "idle_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    def as_dict(self) -> dict:
        data = asdict(self)
        data.pop("taken_at")
        return data


@dataclass(frozen=True)
class ScoreBreakdown:
    """How a final flow score was derived from its snapshot."""
    base: float
    rhythm_bonus: float = 0.0
    idle_penalty: float = 0.0
    final: float = 0.0


@dataclass(frozen=True)
class InterventionEvent:
    kind: InterventionKind
    reason: str
    triggered_at: Optional[float] = None  # ms
