from .intervention_guide import GuideEntry, format_prompt, guide_for
from .monitor_service import FlowMonitor
from .reminders import REMINDERS, ReminderScheduler
from .session_store import RepositorySessionStore, SessionStore

__all__ = [
    "FlowMonitor", "GuideEntry", "REMINDERS", "ReminderScheduler",
    "RepositorySessionStore", "SessionStore", "format_prompt", "guide_for",
]
