"""In-process publish/subscribe for unified events."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from switchboard.models.event import EventType, UnifiedEvent

logger = logging.getLogger(__name__)

WILDCARD = "*"

EventHandler = Callable[[Any], Awaitable[None] | None]


def _key(event_type: EventType | str) -> str:
    return event_type.value if isinstance(event_type, EventType) else event_type


class EventDispatcher:
    """Fans events out to subscribers.

    Type-specific handlers run first, then wildcard handlers, each group in
    registration order. A handler that raises (or whose coroutine raises) is
    logged and skipped; it never stops the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(_key(event_type), [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: EventType | str, handler: EventHandler) -> bool:
        handlers = self._handlers.get(_key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def handler_count(self, event_type: EventType | str | None = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(_key(event_type), []))

    async def dispatch(self, event: UnifiedEvent) -> None:
        # Snapshot so handlers can (un)subscribe while an event is in flight.
        typed = list(self._handlers.get(event.type, []))
        wildcard = list(self._handlers.get(WILDCARD, []))

        for handler in typed:
            await self._invoke(handler, event, event.type)
        for handler in wildcard:
            await self._invoke(handler, event, WILDCARD)

    async def _invoke(self, handler: EventHandler, event: UnifiedEvent, label: str) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Error in %s handler %s",
                "wildcard" if label == WILDCARD else label,
                getattr(handler, "__qualname__", repr(handler)),
            )
