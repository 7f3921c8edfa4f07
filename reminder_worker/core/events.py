"""Event handler registry for the worker."""

import enum
import logging
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


class EventKind(enum.Enum):
    INSTALL = "install"
    ACTIVATE = "activate"
    FETCH = "fetch"
    PUSH = "push"
    NOTIFICATION_CLICK = "notificationclick"
    SYNC = "sync"
    PERIODIC_SYNC = "periodicsync"
    MESSAGE = "message"


class HandlerRegistry:
    """Maps each event kind to the single handler that processes it.

    Built once at startup. Hosts (the Telegram bot, the HTTP API, tests) only
    talk to the worker through ``emit``, and await it until the handler's
    work is done.
    """

    def __init__(self):
        self._handlers: Dict[EventKind, Handler] = {}

    def register(self, kind: EventKind, handler: Handler):
        """
        Register the handler for an event kind.

        Args:
            kind: Event kind
            handler: Coroutine function receiving the event arguments
        """
        if kind in self._handlers:
            logger.warning(f"Handler for {kind.value} already registered, replacing")

        self._handlers[kind] = handler
        logger.debug(f"Registered handler: {kind.value} -> {handler.__name__}")

    def get(self, kind: EventKind) -> Handler:
        return self._handlers.get(kind)

    def kinds(self) -> List[EventKind]:
        return list(self._handlers)

    async def emit(self, kind: EventKind, *args, **kwargs) -> Any:
        """Run the handler for ``kind``. Events without a handler are dropped."""
        handler = self._handlers.get(kind)
        if handler is None:
            logger.debug(f"No handler for {kind.value}, dropping event")
            return None
        return await handler(*args, **kwargs)
