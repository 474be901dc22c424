"""
Reminders — scheduled wellness prompts that run alongside the rule-driven ones.

Breathing, eye rest, posture and hydration each keep their own interval,
measured from the start of the session or from the reminder's last firing.
Timers are checked on a coarse cadence. When several are due at the same
check, only the first in REMINDERS fires; the others wait for the next check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from flowmonitor.config import MonitorConfig
from flowmonitor.engine.clock import Scheduler, TimerHandle
from flowmonitor.engine.models import InterventionEvent, InterventionKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reminder:
    kind: InterventionKind
    interval_field: str    # MonitorConfig attribute, in minutes
    reason: str


REMINDERS = (
    Reminder(InterventionKind.BREATHING, "breathing_interval_min",
             "Time for a scheduled breathing exercise."),
    Reminder(InterventionKind.EYE_STRAIN, "eye_rest_interval_min",
             "Scheduled eye rest: look 20 feet away for 20 seconds."),
    Reminder(InterventionKind.POSTURE, "posture_interval_min",
             "Scheduled posture check."),
    Reminder(InterventionKind.HYDRATION, "hydration_interval_min",
             "Time to drink some water."),
)


class ReminderScheduler:
    """Fires at most one due reminder per check through on_due."""

    def __init__(
        self,
        scheduler: Scheduler,
        config: MonitorConfig,
        on_due: Callable[[InterventionEvent], None],
    ) -> None:
        self.scheduler = scheduler
        self.on_due = on_due
        self.check_ms = config.reminder_check_s * 1000.0
        # interval 0 disables a reminder
        self.intervals_ms: Dict[InterventionKind, float] = {
            r.kind: getattr(config, r.interval_field) * 60_000.0
            for r in REMINDERS if getattr(config, r.interval_field) > 0
        }
        self.last_fired: Dict[InterventionKind, float] = {}
        self._handle: Optional[TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        """Reset every timer to now and start checking."""
        self.disarm()
        now = self.scheduler.now()
        self.last_fired = {kind: now for kind in self.intervals_ms}
        if self.intervals_ms:
            self._handle = self.scheduler.call_every(self.check_ms, self.check)

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def due(self, now: float) -> List[Reminder]:
        return [
            r for r in REMINDERS
            if r.kind in self.intervals_ms
            and now - self.last_fired[r.kind] >= self.intervals_ms[r.kind]
        ]

    def check(self) -> Optional[InterventionEvent]:
        now = self.scheduler.now()
        pending = self.due(now)
        if not pending:
            return None
        reminder = pending[0]
        self.last_fired[reminder.kind] = now
        event = InterventionEvent(reminder.kind, reminder.reason, now)
        logger.debug("Reminder due: %s (%d waiting)", reminder.kind.value, len(pending) - 1)
        self.on_due(event)
        return event
