"""Publish/subscribe channel between platform adapters and consumers."""

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

from chatbridge.core.models import BotEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[BotEvent], Union[None, Awaitable[Any]]]


class EventBridge:
    """Typed event channel decoupling adapters from downstream consumers.

    Publishing is synchronous: every current subscriber of the event's type is
    called in registration order. A subscriber that raises is logged and
    skipped; the others still receive the event. Subscribers returning an
    awaitable are scheduled on the running event loop.

    There is no buffering or replay. A handler registered after an event was
    published never sees it.
    """

    def __init__(self) -> None:
        """Initialize an empty bridge."""
        self._subscribers: dict[EventType, list[EventHandler]] = {
            event_type: [] for event_type in EventType
        }
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()

    def subscribe(
        self, event_type: Union[EventType, str], handler: EventHandler
    ) -> Callable[[], bool]:
        """Register a handler for an event type.

        Args:
            event_type: Event type or its name ("message", "user_join", ...)
            handler: Callable receiving the published event

        Returns:
            A callable that removes the subscription

        Raises:
            ValueError: If the event type name is unknown
        """
        resolved = EventType(event_type)
        with self._lock:
            self._subscribers[resolved].append(handler)
        logger.debug(f"Subscribed {_handler_name(handler)} to '{resolved.value}'")
        return lambda: self.unsubscribe(resolved, handler)

    def unsubscribe(self, event_type: Union[EventType, str], handler: EventHandler) -> bool:
        """Remove a handler.

        Returns:
            True if the handler was subscribed
        """
        resolved = EventType(event_type)
        with self._lock:
            handlers = self._subscribers[resolved]
            if handler not in handlers:
                return False
            handlers.remove(handler)
        return True

    def publish(self, event: BotEvent) -> int:
        """Deliver an event to every current subscriber of its type.

        Args:
            event: The event to publish

        Returns:
            Number of handlers that accepted the event without raising
        """
        with self._lock:
            handlers = list(self._subscribers[event.type])

        delivered = 0
        for handler in handlers:
            try:
                result = handler(event)
            except Exception:
                logger.exception(
                    f"Subscriber {_handler_name(handler)} failed on "
                    f"'{event.type.value}' event from {event.platform.value}"
                )
                continue

            if inspect.isawaitable(result):
                self._schedule(result, handler, event)
            delivered += 1

        return delivered

    def _schedule(self, awaitable: Awaitable[Any], handler: EventHandler, event: BotEvent) -> None:
        """Run an async subscriber in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop for async subscriber {_handler_name(handler)}; "
                f"'{event.type.value}' event dropped"
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Async subscriber failed: {exc}", exc_info=exc)

    def subscriber_count(self, event_type: Optional[Union[EventType, str]] = None) -> int:
        """Number of subscribers for one event type, or for all of them."""
        with self._lock:
            if event_type is None:
                return sum(len(handlers) for handlers in self._subscribers.values())
            return len(self._subscribers[EventType(event_type)])

    @property
    def pending_tasks(self) -> int:
        """Async subscriber tasks still running."""
        return len(self._tasks)

    def clear(self) -> None:
        """Remove every subscriber."""
        with self._lock:
            for handlers in self._subscribers.values():
                handlers.clear()


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
