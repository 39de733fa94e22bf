# wcdiag/event_manager.py

from collections import defaultdict
from enum import Enum
from typing import Callable, DefaultDict, List, Tuple
import logging


class EventType(Enum):
    """Notifications published while configuration and schema change."""
    CONFIG_UPDATE = "config_update"
    CONFIG_ERROR = "config_error"
    SCHEMA_LOADED = "schema_loaded"
    SOURCE_FAILED = "source_failed"
    CACHE_INVALIDATE = "cache_invalidate"
    RELOAD_SCHEDULED = "reload_scheduled"
    RELOAD_COMPLETE = "reload_complete"


class EventManager:
    """
    Synchronous publish/subscribe hub shared by the engine components.

    Handlers receive event data as keyword arguments. A failing handler is
    logged and does not stop the others. Re-emitting an event that is still
    being dispatched for the same target is dropped.
    """

    max_depth = 10

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._subscribers: DefaultDict[EventType, List[Callable]] = defaultdict(list)
        self._dispatching: List[Tuple[EventType, str]] = []

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        subscribers = self._subscribers[event_type]
        if handler not in subscribers:
            subscribers.append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        subscribers = self._subscribers[event_type]
        if handler in subscribers:
            subscribers.remove(handler)

    def handlers(self, event_type: EventType) -> List[Callable]:
        return list(self._subscribers[event_type])

    def emit(self, event_type: EventType, **data) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            int: Number of handlers that completed without raising
        """
        target = str(data.get("reason") or data.get("target") or data.get("library") or "")
        key = (event_type, target)

        if len(self._dispatching) >= self.max_depth:
            self.logger.warning(f"Event nesting too deep, dropping {event_type.value} ({target})")
            return 0
        if key in self._dispatching:
            self.logger.debug(f"Dropping re-entrant {event_type.value} ({target})")
            return 0

        delivered = 0
        self._dispatching.append(key)
        try:
            for handler in self.handlers(event_type):
                try:
                    handler(**data)
                    delivered += 1
                except Exception as e:
                    self.logger.error(f"Handler {getattr(handler, '__name__', handler)!s} failed on {event_type.value}: {str(e)}")
        finally:
            self._dispatching.pop()
        return delivered

    def clear(self) -> None:
        self._subscribers.clear()
