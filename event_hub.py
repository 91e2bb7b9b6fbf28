"""Observer registry for server lifecycle notifications."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

EVENT_START = "start"
EVENT_STOP = "stop"
LIFECYCLE_EVENTS = (EVENT_START, EVENT_STOP)


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    origin: str
    message: str


Listener = Callable[[LifecycleEvent], None]


class EventHub:
    def __init__(self, event_types: tuple[str, ...] = LIFECYCLE_EVENTS) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in event_types}

    def subscribe(self, event_type: str, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it again."""
        with self._lock:
            if event_type not in self._listeners:
                raise ValueError(f"Unknown event type: {event_type}")
            self._listeners[event_type].append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(event_type, listener)

        return unsubscribe

    def unsubscribe(self, event_type: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

    def listener_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._listeners.get(event_type, []))

    def publish(self, event_type: str, event: LifecycleEvent) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event_type, []))

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener for %r event failed", event_type)
