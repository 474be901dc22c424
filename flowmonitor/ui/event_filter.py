"""
Qt input → engine InputEvents.

Installed as an application-wide event filter. Key and mouse events are
taken only where they first arrive (the QWindow), so an event that Qt then
propagates through several widgets is counted once. App deactivation maps to
a visibility change and losing the focus window maps to a blur.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QGuiApplication, QWindow

from flowmonitor.engine.events import EventBus, EventKind, EventSource, Handler, InputEvent, Unsubscribe

logger = logging.getLogger(__name__)

_KEY_NAMES = {
    Qt.Key.Key_Backspace: "Backspace",
    Qt.Key.Key_Delete: "Delete",
}


class QtEventSource(QObject, EventSource):
    def __init__(self, app: QGuiApplication, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.app = app
        self.bus = EventBus()
        app.installEventFilter(self)
        app.applicationStateChanged.connect(self._on_app_state_changed)
        app.focusWindowChanged.connect(self._on_focus_window_changed)

    def subscribe(self, kind: EventKind, handler: Handler) -> Unsubscribe:
        return self.bus.subscribe(kind, handler)

    def shutdown(self) -> None:
        self.app.removeEventFilter(self)

    # ── Qt hooks ────────────────────────────────────────────────────────────

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if not isinstance(obj, QWindow):
            return False
        etype = event.type()
        if etype == QEvent.Type.KeyPress:
            key = _KEY_NAMES.get(Qt.Key(event.key()), event.text() or None)
            self.bus.publish(InputEvent(EventKind.KEY_DOWN, key=key))
        elif etype == QEvent.Type.MouseMove:
            pos = event.globalPosition()
            geometry = self._screen_geometry(obj)
            self.bus.publish(InputEvent(
                EventKind.POINTER_MOVE,
                x=pos.x() - geometry.x(), y=pos.y() - geometry.y(),
                viewport_width=geometry.width(), viewport_height=geometry.height(),
            ))
        elif etype == QEvent.Type.MouseButtonPress:
            self.bus.publish(InputEvent(EventKind.POINTER_CLICK))
        return False

    def _on_app_state_changed(self, state: Qt.ApplicationState) -> None:
        hidden = state != Qt.ApplicationState.ApplicationActive
        self.bus.publish(InputEvent(EventKind.VISIBILITY_CHANGE, hidden=hidden))

    def _on_focus_window_changed(self, window: Optional[QWindow]) -> None:
        if window is None:
            self.bus.publish(InputEvent(EventKind.WINDOW_BLUR))

    @staticmethod
    def _screen_geometry(window: QWindow):
        screen = window.screen() or QGuiApplication.primaryScreen()
        return screen.geometry()
