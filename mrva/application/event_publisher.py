"""
Event Publisher

Application service for publishing domain events to registered handlers.
Subscribers (logging, WebSocket, tests) observe registry changes without the
orchestrator knowing about them.
"""

import logging
from threading import Lock
from typing import Callable, Dict, List, Type

from mrva.domain.events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventPublisher:
    """
    Event publisher that dispatches domain events to registered handlers.

    Dispatch is synchronous on the publishing thread. Handler exceptions are
    caught and logged so side effects cannot break orchestration.

    Thread-safe for concurrent publishing and subscription.
    """

    def __init__(self):
        """Initialize EventPublisher with empty handler registry."""
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._lock = Lock()

    def subscribe(
        self,
        event_type: Type[DomainEvent],
        handler: EventHandler,
    ) -> Callable[[], None]:
        """
        Register a handler for a specific event type.

        Args:
            event_type: The type of domain event to handle
            handler: Callable that accepts the event as parameter

        Returns:
            Callable that removes the subscription again

        Example:
            unsubscribe = publisher.subscribe(VariantAnalysisRemovedEvent, on_removed)
            ...
            unsubscribe()
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        logger.debug(f"Registered handler {_handler_name(handler)} for {event_type.__name__}")

        def unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all handlers registered for its type.

        Args:
            event: The domain event to publish
        """
        event_type = type(event)

        with self._lock:
            handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug(f"No handlers registered for {event_type.__name__}")
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Side effects must not break orchestration
                logger.error(
                    f"Error in handler {_handler_name(handler)} for {event_type.__name__}: {e}",
                    exc_info=True,
                )
