"""In-process event fan-out for simulation events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

STRUCTURE_PLACED = "structure_placed"
PLAN_COMPLETED = "plan_completed"
ADVISORY_UNAVAILABLE = "advisory_unavailable"
TICK_COMPLETED = "tick_completed"

EventHandler = Callable[[str, dict], None]


class EventBus:
    """Synchronous publish/subscribe bus; a failing handler never stops the others."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._logger = logger or logging.getLogger("autocity.events")

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict) -> None:
        for handler in list(self._handlers.get(event_name, ())):
            try:
                handler(event_name, payload)
            except Exception:  # noqa: BLE001 - subscribers are outside the core's control.
                self._logger.exception("event_handler_failed", extra={"event_name": event_name})


class RecordingTelemetry:
    """Keeps emitted events in memory; handy for tests and batch runs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def emit(self, event_name: str, payload: dict) -> None:
        self.events.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
