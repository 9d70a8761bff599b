"""Event bus for pushing state changes to presentation layers"""

import asyncio
import inspect
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger

from jugabar.domain.models.event import Event, EventType


class EventBus:
    """Central event bus for change notifications

    Manages event publishing and subscription. Events are processed
    asynchronously through a queue, so publishers never wait on
    subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Callable]] = {}
        self._event_queue: asyncio.Queue = asyncio.Queue()
        self._running = False
        self._handlers: list[Callable] = []
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        """Subscribe handler to event type

        Args:
            event_type: Type of event to subscribe to
            handler: Callable (sync or async) invoked with the Event
        """
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to event: {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        if handler in self._subscribers.get(event_type, []):
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed handler from event: {event_type.value}")

    def add_handler(self, handler: Callable) -> None:
        """Add global handler that receives every event"""
        self._handlers.append(handler)
        logger.debug("Added global event handler")

    def remove_handler(self, handler: Callable) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)
            logger.debug("Removed global event handler")

    async def publish(self, event: Event) -> None:
        await self._event_queue.put(event)
        logger.debug(f"Published event: {event}")

    def publish_sync(self, event: Event) -> None:
        """Publish event without awaiting (from synchronous code)"""
        self._event_queue.put_nowait(event)
        logger.debug(f"Published event (sync): {event}")

    async def start(self) -> None:
        """Start event processing loop

        Creates a background task that processes events from the queue.
        """
        if self._running:
            logger.warning("Event bus already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Stop event processing after draining queued events"""
        if not self._running:
            logger.warning("Event bus not running")
            return

        if self._task:
            await self._event_queue.put(None)
            await self._task
            self._task = None

        self._running = False
        logger.info("Event bus stopped")

    async def _process_events(self) -> None:
        """Background task that processes events from the queue"""
        logger.debug("Event processing loop started")

        while True:
            event = await self._event_queue.get()
            if event is None:
                break
            await self._process_event(event)

        logger.debug("Event processing loop stopped")

    async def _process_event(self, event: Event) -> None:
        """Process single event

        Notifies global handlers first, then type-specific handlers. A
        failing handler is logged and does not affect the others.
        """
        handlers = list(self._handlers) + list(
            self._subscribers.get(event.type, [])
        )
        for handler in handlers:
            try:
                if inspect.iscoroutinefunction(handler):
                    await handler(event)
                else:
                    handler(event)
            except Exception:
                logger.exception(f"Handler failed for {event.type.value}")


def create_event(
    type: EventType,
    data: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> Event:
    """Factory function to create an Event"""
    return Event(type=type, data=data, timestamp=timestamp)
