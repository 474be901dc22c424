"""
Raw interaction events and the event-source interface.

The collector only ever sees InputEvent objects delivered through
EventSource.subscribe(). EventBus is the in-process source used by tests,
scripts, and the Qt adapter (which republishes Qt input onto a bus).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, DefaultDict, List, Optional

logger = logging.getLogger(__name__)

BACKSPACE_KEYS = frozenset({"Backspace", "Delete"})


class EventKind(str, Enum):
    KEY_DOWN = "key_down"
    POINTER_MOVE = "pointer_move"
    POINTER_CLICK = "pointer_click"
    VISIBILITY_CHANGE = "visibility_change"
    WINDOW_BLUR = "window_blur"


@dataclass(frozen=True)
class InputEvent:
    """
    A single raw notification from the UI runtime.

    Only the fields relevant to `kind` are read:
        KEY_DOWN          -> key
        POINTER_MOVE      -> x, y (and viewport_width/height for attention)
        POINTER_CLICK     -> nothing
        VISIBILITY_CHANGE -> hidden
        WINDOW_BLUR       -> nothing
    timestamp is milliseconds; when None the receiver stamps it with its clock.
    """
    kind: EventKind
    timestamp: Optional[float] = None
    key: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    viewport_width: Optional[float] = None
    viewport_height: Optional[float] = None
    hidden: Optional[bool] = None

    @property
    def is_backspace(self) -> bool:
        return self.key in BACKSPACE_KEYS


Handler = Callable[[InputEvent], None]
Unsubscribe = Callable[[], None]


class EventSource:
    """Anything that can deliver InputEvents to subscribers."""

    def subscribe(self, kind: EventKind, handler: Handler) -> Unsubscribe:
        raise NotImplementedError


class EventBus(EventSource):
    """Synchronous in-process publish/subscribe for InputEvents."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[EventKind, List[Handler]] = defaultdict(list)

    def subscribe(self, kind: EventKind, handler: Handler) -> Unsubscribe:
        self._handlers[kind].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[kind].remove(handler)
            except ValueError:
                pass  # already detached

        return unsubscribe

    def publish(self, event: InputEvent) -> None:
        for handler in list(self._handlers.get(event.kind, ())):
            handler(event)

    def subscriber_count(self, kind: Optional[EventKind] = None) -> int:
        if kind is not None:
            return len(self._handlers.get(kind, ()))
        return sum(len(h) for h in self._handlers.values())
