"""Change notifications emitted on load, enable and disable."""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    LOAD = "load"
    ENABLE = "enable"
    DISABLE = "disable"


@dataclass(frozen=True)
class ChangeEvent:
    """A lifecycle transition that already happened."""

    operation: Operation
    key: str

    def to_dict(self):
        return {"operation": self.operation.value, "key": self.key}


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Synchronous publish/subscribe list for change events."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def add_listener(self, callback: Listener):
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Listener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def set_listener(self, callback: Optional[Listener]):
        """Replace every subscriber with ``callback`` (None clears them)."""
        self._listeners = [callback] if callback is not None else []

    @property
    def listeners(self) -> List[Listener]:
        return list(self._listeners)

    def emit(self, operation: Operation, key: str):
        """Deliver an event to every listener, in subscription order."""
        event = ChangeEvent(Operation(operation), key)
        for listener in list(self._listeners):
            listener(event)


class ChangeLog:
    """Listener that keeps the most recent events for debug tooling."""

    def __init__(self, maxlen: int = 200):
        self._events: Deque[ChangeEvent] = deque(maxlen=maxlen)

    def __call__(self, event: ChangeEvent):
        self._events.append(event)

    def recent(self, limit: Optional[int] = None) -> List[ChangeEvent]:
        events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear(self):
        self._events.clear()
