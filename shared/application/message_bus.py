"""
Message Bus

Routes commands to their single handler and domain events to any number of
subscribers. A bus is built by the composition root of each bounded context
and passed to the unit of work that publishes events after commit.
"""

from typing import Any, Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """
    Message bus for commands and events

    Commands: One handler per command (1:1), errors propagate to the caller
    Events: Multiple handlers per event (1:N), errors are logged
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._command_handlers: Dict[Type, Callable[[Any], Any]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        self._event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered event handler for {event_type.__name__}")

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        """Only one handler can be registered per command type."""
        if command_type in self._command_handlers:
            raise ValueError(
                f"Handler for {command_type.__name__} is already registered. "
                "Commands can have only one handler."
            )
        self._command_handlers[command_type] = handler
        logger.debug(f"Registered command handler for {command_type.__name__}")

    def handle_command(self, command: Any) -> Any:
        """
        Dispatch a command and return the handler's result

        Raises LookupError if no handler is registered.
        """
        command_type = type(command)
        handler = self._command_handlers.get(command_type)

        if handler is None:
            raise LookupError(f"No handler registered for command {command_type.__name__}")

        logger.info(f"Handling command: {command_type.__name__}")
        return handler(command)

    def publish_events(self, events: List[DomainEvent]):
        """
        Publish domain events

        All registered handlers for each event type are called.
        A failing handler does not stop the others.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])

            if not handlers:
                logger.debug(f"No handlers registered for event {event_type.__name__}")
                continue

            logger.info(f"Publishing event: {event_type.__name__} (ID: {event.event_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {getattr(handler, '__name__', handler)!r} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )
