"""
Event bus system for chekprint.

Provides pub/sub messaging between the transport layer, the print
manager and the host application. Producers never call into consumers
directly: they emit or queue events and consumers subscribe.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Awaitable
from enum import Enum, auto
import asyncio
import inspect
import logging
import time
from collections import defaultdict

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Built-in event types."""
    # Discovery events
    SCAN_STARTED = auto()
    SCAN_COMPLETE = auto()

    # Connection events
    CONNECTION_CHANGED = auto()

    # Printer events
    PRINT_START = auto()
    PRINT_COMPLETE = auto()
    PRINT_ERROR = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: Event type (EventType enum or custom string)
        data: Event payload
        source: Component that emitted the event
        timestamp: When event was created
    """
    type: EventType | str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    timestamp: float = field(default_factory=time.time)


# Type aliases for handlers
SyncHandler = Callable[[Event], None]
AsyncHandler = Callable[[Event], Awaitable[None]]
Handler = SyncHandler | AsyncHandler


class EventBus:
    """
    Delivers printer events to subscribers.

    Connection and scan changes happen in the middle of transport I/O, so
    they are queued and delivered later by ``run`` (the print manager keeps
    it running while it is started). Print job outcomes are emitted
    straight away to synchronous subscribers.
    """

    def __init__(self, history_limit: int = 100) -> None:
        self._handlers: dict[EventType | str, list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._history: list[Event] = []
        self._history_limit = history_limit

    def subscribe(
        self,
        event_type: EventType | str,
        handler: Handler
    ) -> Callable[[], None]:
        """
        Subscribe to one event type.

        Args:
            event_type: Type of event to listen for
            handler: Callback, plain or coroutine function

        Returns:
            Unsubscribe function
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to every event. Returns an unsubscribe function."""
        self._global_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._global_handlers:
                self._global_handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """
        Deliver an event now.

        Coroutine handlers only see queued events.
        """
        self._record(event)
        for handler in self._handlers_for(event):
            if inspect.iscoroutinefunction(handler):
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in {event.type} handler: {e}")

    def queue_event(self, event: Event) -> None:
        """Queue an event for the dispatch task."""
        self._record(event)
        self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        """Number of queued events not yet delivered."""
        return self._queue.qsize()

    async def process_queue(self) -> None:
        """Deliver everything queued so far."""
        while not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def run(self) -> None:
        """Deliver queued events until cancelled."""
        logger.debug("Event dispatch started")
        try:
            while True:
                event = await self._queue.get()
                try:
                    await self._deliver(event)
                finally:
                    self._queue.task_done()
        finally:
            logger.debug("Event dispatch stopped")

    def _handlers_for(self, event: Event) -> list[Handler]:
        return self._handlers.get(event.type, []) + self._global_handlers

    async def _deliver(self, event: Event) -> None:
        tasks = []
        for handler in self._handlers_for(event):
            if inspect.iscoroutinefunction(handler):
                tasks.append(asyncio.create_task(handler(event)))
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in {event.type} handler: {e}")

        if tasks:
            for result in await asyncio.gather(*tasks, return_exceptions=True):
                if isinstance(result, Exception):
                    logger.error(f"Error in async {event.type} handler: {result}")

    def _record(self, event: Event) -> None:
        self._history.append(event)
        if len(self._history) > self._history_limit:
            del self._history[0]

    def get_history(
        self,
        event_type: EventType | str | None = None,
        limit: int = 10
    ) -> list[Event]:
        """Get recent events, newest last."""
        history = self._history
        if event_type is not None:
            history = [e for e in history if e.type == event_type]
        return history[-limit:]


# Convenience functions for creating common events
def print_complete_event(job_id: str, size: int, source: str = "print_manager") -> Event:
    """Create a print complete event."""
    return Event(EventType.PRINT_COMPLETE, data={"job_id": job_id, "bytes": size}, source=source)


def print_error_event(job_id: str, error: str, source: str = "print_manager") -> Event:
    """Create a print error event."""
    return Event(EventType.PRINT_ERROR, data={"job_id": job_id, "error": error}, source=source)
