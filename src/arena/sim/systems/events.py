"""Queued event bus the simulation uses to notify the presentation layer."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

CONSUMED = "consumed"
GAME_OVER = "game_over"
POWER_UP_GRANTED = "power_up_granted"
POWER_UP_EXPIRED = "power_up_expired"
AGENT_SPAWNED = "agent_spawned"
RESTARTED = "restarted"

EVENT_NAMES = (CONSUMED, GAME_OVER, POWER_UP_GRANTED, POWER_UP_EXPIRED, AGENT_SPAWNED, RESTARTED)

Handler = Callable[[str, Dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = {}
        self._queue: List[Tuple[str, Dict[str, Any]]] = []

    def subscribe(self, event_name: str, handler: Handler) -> None:
        if event_name not in EVENT_NAMES:
            raise ValueError(f"Unknown event: {event_name}")
        self._subscribers.setdefault(event_name, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        for event_name in EVENT_NAMES:
            self.subscribe(event_name, handler)

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event_name: str, **payload: Any) -> None:
        self._queue.append((event_name, payload))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def flush(self) -> int:
        queued = self._queue
        self._queue = []
        for event_name, payload in queued:
            for handler in list(self._subscribers.get(event_name, [])):
                handler(event_name, payload)
        return len(queued)

    def clear(self) -> None:
        self._queue.clear()
