from .aggregator import AggregationWindow
from .attention import AttentionClass, AttentionEstimator
from .clock import ManualScheduler, Scheduler, TimerHandle
from .collector import SignalCollector
from .events import EventBus, EventKind, EventSource, InputEvent
from .models import InterventionEvent, InterventionKind, MetricsSnapshot, ScoreBreakdown, SessionState

__all__ = [
    "AggregationWindow", "AttentionClass", "AttentionEstimator",
    "ManualScheduler", "Scheduler", "TimerHandle", "SignalCollector",
    "EventBus", "EventKind", "EventSource", "InputEvent",
    "InterventionEvent", "InterventionKind", "MetricsSnapshot",
    "ScoreBreakdown", "SessionState",
]
