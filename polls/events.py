"""Lifecycle notifications delivered to in-process observers"""

import logging
from typing import Any, Callable, List, Type

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class EventLog:
    """Append-only record of published notifications with subscriber fan-out"""

    def __init__(self):
        self.events: List[Any] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber):
        self._subscribers.append(callback)

    def publish(self, event: Any):
        self.events.append(event)
        logger.debug(f"Event {type(event).__name__}: {event}")
        # Runs after commit, so observer errors are logged rather than raised
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Subscriber {callback!r} failed on {type(event).__name__}")

    def of_type(self, event_type: Type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self):
        self.events.clear()
