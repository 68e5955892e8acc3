"""
Event system for room lifecycle notifications.

Sessions and caches announce what happens to rooms (generated, loaded,
cached, evicted) on an EventBus. A UI layer subscribes to keep its loading
indicators and minimap in sync; tests subscribe to observe the pipeline.
"""

import sys
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional


class Event(Enum):
    """Things that happen to rooms during a session."""

    # Room lifecycle
    ROOM_GENERATED = auto()  # kwargs: room_id
    ROOM_LOADED = auto()  # kwargs: room_id, source ("live", "cache", "generated", "prefetch")
    ROOM_UNLOADED = auto()  # kwargs: room_id

    # Persistent cache
    ROOM_CACHED = auto()  # kwargs: room_id, persisted
    CACHE_HIT = auto()  # kwargs: room_id
    CACHE_MISS = auto()  # kwargs: room_id
    CACHE_CLEARED = auto()

    # Background work
    PREFETCH_QUEUED = auto()  # kwargs: room_id
    ENHANCEMENT_FAILED = auto()  # kwargs: room_id, error

    # Player
    PLAYER_MOVED = auto()  # kwargs: room_id, direction, spawn


@dataclass
class EventData:
    """One emitted event and the keyword data it was emitted with."""

    event: Event
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def room_id(self) -> Optional[str]:
        return self.kwargs.get("room_id")

    def __repr__(self) -> str:
        parts = [self.event.name] + [f"{key}={value}" for key, value in self.kwargs.items()]
        return f"EventData({', '.join(parts)})"


EventHandler = Callable[[EventData], None]


class EventBus:
    """
    Publish/subscribe hub for room events.

    Handlers run synchronously inside emit(), in subscription order, over a
    snapshot of the subscriber list. A failing handler is reported on stderr
    and skipped; the remaining handlers still run and the emitter never sees
    the error.
    """

    def __init__(self, debug: bool = False) -> None:
        self._handlers: Dict[Event, List[EventHandler]] = {}
        self._debug: bool = debug

    def set_debug(self, debug: bool) -> None:
        """Enable or disable echoing every event to stderr."""
        self._debug = debug

    def subscribe(self, event: Event, handler: EventHandler) -> EventHandler:
        """Register handler for event and return it, for a later unsubscribe()."""
        self._handlers.setdefault(event, []).append(handler)
        return handler

    def unsubscribe(self, event: Event, handler: EventHandler) -> None:
        """
        Raises:
            ValueError: If handler is not subscribed to event
        """
        handlers = self._handlers.get(event, [])
        if handler not in handlers:
            raise ValueError(f"Handler not subscribed to {event.name}")
        handlers.remove(handler)

    def emit(self, event: Event, **kwargs: Any) -> None:
        data = EventData(event=event, kwargs=kwargs)
        if self._debug:
            print(f"[EventBus] {data}", file=sys.stderr)

        for handler in tuple(self._handlers.get(event, ())):
            try:
                handler(data)
            except Exception as e:
                print(f"[EventBus] Handler error for {event.name}: {e}", file=sys.stderr)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event: Optional[Event] = None) -> int:
        """Handlers for event, or for every event when event is None."""
        if event is None:
            return sum(map(len, self._handlers.values()))
        return len(self._handlers.get(event, ()))
