from .main_window import MainWindow
from .qt_scheduler import QtScheduler
from .event_filter import QtEventSource

__all__ = ["MainWindow", "QtScheduler", "QtEventSource"]
