"""Lifecycle event hooks for task execution."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

EXECUTION_START = "execution:start"
EXECUTION_END = "execution:end"
EXECUTION_ERROR = "execution:error"

EVENT_TYPES = (EXECUTION_START, EXECUTION_END, EXECUTION_ERROR)

HookHandler = Callable[[dict[str, Any]], None]


class HookRegistry:
    """Synchronous event registry. A failing handler never stops the others."""

    def __init__(self):
        self._listeners: dict[str, list[HookHandler]] = {}

    def on(self, event: str, handler: HookHandler) -> None:
        if event not in EVENT_TYPES:
            raise ValueError(f"Unknown hook event: {event}")
        handlers = self._listeners.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event: str, handler: HookHandler) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for handler in list(self._listeners.get(event, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in hook handler for event %s", event)

    def clear(self) -> None:
        self._listeners.clear()
