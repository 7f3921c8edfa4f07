"""Messages from the foreground application."""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from reminder_worker.core.capabilities import CapabilitySet, DELAYED_SCHEDULING
from reminder_worker.errors import MalformedMessage, UnsupportedCapability
from .dispatcher import NotificationDispatcher
from .store import Reminder

logger = logging.getLogger(__name__)

ACTIVATE_NOW = "ACTIVATE_NOW"
SKIP_WAITING = "SKIP_WAITING"  # older foreground builds
SCHEDULE_NOTIFICATION = "SCHEDULE_NOTIFICATION"


class TimerRegistry:
    """Pending delayed callbacks keyed by reminder id.

    Scheduling a key that is already pending cancels the earlier timer, so a
    reminder has at most one pending delivery. The backend does the actual
    waiting (see reminder_worker.scheduler.jobs).
    """

    def __init__(self, backend):
        self.backend = backend
        self._pending: Dict[str, Tuple[object, Any]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def schedule(self, key: str, delay: float, callback: Callable[[], Awaitable[Any]]):
        """Run ``callback`` after ``delay`` seconds, replacing any pending timer for ``key``."""
        self.cancel(key)
        token = object()

        async def fire():
            current = self._pending.get(key)
            if current is None or current[0] is not token:
                return
            del self._pending[key]
            try:
                await callback()
            except Exception as e:
                logger.error(f"Delayed delivery for {key} failed: {e}")

        handle = self.backend.start(delay, fire, name=f"deliver:{key}")
        self._pending[key] = (token, handle)

    def cancel(self, key: str) -> bool:
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        self.backend.cancel(entry[1])
        logger.debug(f"Cancelled pending delivery for {key}")
        return True

    def cancel_all(self):
        for key in list(self._pending):
            self.cancel(key)


def parse_schedule_request(message: Dict[str, Any]) -> Tuple[Reminder, float]:
    """Extract the reminder and the delay in seconds from a scheduling message."""
    record = message.get("reminder")
    if not isinstance(record, dict):
        raise MalformedMessage("SCHEDULE_NOTIFICATION without a reminder object")

    try:
        reminder = Reminder.from_dict(record)
    except ValueError as e:
        raise MalformedMessage(str(e)) from e

    delay = message.get("delay", 0)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        raise MalformedMessage(f"invalid delay {delay!r}")

    return reminder, delay / 1000.0


class ForegroundBridge:
    """Interprets control and scheduling messages posted by the foreground app."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        timers: TimerRegistry,
        capabilities: CapabilitySet,
        activate: Callable[[], Awaitable[Any]],
    ):
        self.dispatcher = dispatcher
        self.timers = timers
        self.capabilities = capabilities
        self._activate = activate

    async def on_message(self, message: Any) -> Optional[str]:
        """
        Handle a foreground message.

        Returns:
            The message type that was acted on, or None if it was ignored
        """
        kind = message.get("type") if isinstance(message, dict) else None

        if kind in (ACTIVATE_NOW, SKIP_WAITING):
            await self._activate()
            return kind

        if kind == SCHEDULE_NOTIFICATION:
            try:
                return self._schedule(message)
            except MalformedMessage as e:
                logger.debug(f"Ignoring malformed scheduling request: {e}")
                return None

        logger.debug(f"Ignoring unrecognized message: {message!r}")
        return None

    def _schedule(self, message: Dict[str, Any]) -> Optional[str]:
        reminder, delay = parse_schedule_request(message)

        try:
            self.capabilities.require(DELAYED_SCHEDULING)
        except UnsupportedCapability:
            logger.debug(f"Delayed scheduling unavailable, dropping request for {reminder.id}")
            return None

        self.timers.schedule(
            reminder.id,
            delay,
            lambda: self.dispatcher.dispatch(reminder, is_overdue=False),
        )
        logger.info(f"Scheduled notification for {reminder.id} in {delay:.0f}s")
        return SCHEDULE_NOTIFICATION
