"""Rendering reminders into displayed notifications."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from reminder_worker.config import WorkerConfig
from reminder_worker.core.capabilities import CapabilitySet, NOTIFICATIONS
from reminder_worker.errors import UnsupportedCapability
from .store import Reminder, PRIORITY_CRITICAL

logger = logging.getLogger(__name__)

ACTION_MARK_COMPLETE = "mark-complete"
ACTION_SNOOZE = "snooze"

REMINDER_TITLE = "💉 Vaccination Reminder"
OVERDUE_TITLE = "⚠️ Overdue Vaccination"
DEFAULT_PUSH_BODY = "Vaccination reminder notification"
DEFAULT_PUSH_TAG = "push"
PUSH_VIBRATE = [100, 50, 100]


@dataclass(frozen=True)
class NotificationAction:
    action: str
    title: str
    icon: str

    def to_dict(self) -> Dict[str, str]:
        return {"action": self.action, "title": self.title, "icon": self.icon}


@dataclass
class DisplayedNotification:
    """A notification as handed to the host notification surface."""
    title: str
    body: str
    tag: str
    icon: str
    badge: str
    require_interaction: bool = False
    data: Dict[str, Any] = field(default_factory=dict)
    vibrate: Optional[List[int]] = None
    actions: List[NotificationAction] = field(default_factory=list)

    @property
    def reminder_id(self) -> Optional[str]:
        return self.data.get("reminderId")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "requireInteraction": self.require_interaction,
            "data": dict(self.data),
        }
        if self.vibrate is not None:
            payload["vibrate"] = list(self.vibrate)
        if self.actions:
            payload["actions"] = [a.to_dict() for a in self.actions]
        return payload


class NotificationSurface(ABC):
    """Where notifications are displayed.

    Keeps at most one live notification per tag: showing a notification whose
    tag is already live replaces the previous one.
    """

    available = True

    def __init__(self):
        self._live: Dict[str, DisplayedNotification] = {}

    def get(self, tag: str) -> Optional[DisplayedNotification]:
        return self._live.get(tag)

    def live(self) -> List[DisplayedNotification]:
        return list(self._live.values())

    async def show(self, notification: DisplayedNotification):
        previous = self._live.get(notification.tag)
        if previous is not None:
            logger.debug(f"Replacing live notification '{notification.tag}'")
        await self._render(notification, previous)
        self._live[notification.tag] = notification

    async def close(self, tag: str):
        notification = self._live.pop(tag, None)
        if notification is not None:
            await self._remove(notification)

    @abstractmethod
    async def _render(self, notification: DisplayedNotification, previous: Optional[DisplayedNotification]):
        """Display ``notification``, removing ``previous`` if there is one."""

    @abstractmethod
    async def _remove(self, notification: DisplayedNotification):
        """Remove a displayed notification."""


class InMemoryNotificationSurface(NotificationSurface):
    """Surface that only records what was shown. Used when no chat is configured."""

    def __init__(self, available: bool = True):
        super().__init__()
        self.available = available
        self.shown: List[DisplayedNotification] = []

    async def _render(self, notification, previous):
        self.shown.append(notification)

    async def _remove(self, notification):
        pass


class NotificationDispatcher:
    """Turns due reminders and push payloads into displayed notifications."""

    def __init__(self, surface: NotificationSurface, capabilities: CapabilitySet, config: WorkerConfig):
        self.surface = surface
        self.capabilities = capabilities
        self.config = config

    def _actions(self) -> List[NotificationAction]:
        return [
            NotificationAction(ACTION_MARK_COMPLETE, "Mark Complete", self.config.complete_icon),
            NotificationAction(ACTION_SNOOZE, "Snooze 1hr", self.config.snooze_icon),
        ]

    def render(self, reminder: Reminder, is_overdue: bool) -> DisplayedNotification:
        """Build the notification for a due reminder without displaying it."""
        if is_overdue:
            title = OVERDUE_TITLE
            body = f"{reminder.name} was due on {reminder.scheduled_date}"
        else:
            title = REMINDER_TITLE
            body = f"{reminder.name} is scheduled for today at {reminder.scheduled_time}"

        return DisplayedNotification(
            title=title,
            body=body,
            tag=reminder.id,
            icon=self.config.icon,
            badge=self.config.badge,
            require_interaction=reminder.priority == PRIORITY_CRITICAL,
            data={"reminderId": reminder.id, "isOverdue": is_overdue},
            actions=self._actions(),
        )

    def render_push(self, payload: Optional[str]) -> DisplayedNotification:
        """Build the notification for a push message payload.

        The payload is either plain text used as the body, or a JSON object
        with optional ``title``, ``body`` and ``reminderId``.
        """
        title, body, reminder_id = REMINDER_TITLE, DEFAULT_PUSH_BODY, None

        if payload:
            parsed = None
            try:
                parsed = json.loads(payload)
            except ValueError:
                pass

            if isinstance(parsed, dict):
                title = parsed.get("title") or title
                body = parsed.get("body") or body
                if parsed.get("reminderId") is not None:
                    reminder_id = str(parsed["reminderId"])
            else:
                body = payload

        return DisplayedNotification(
            title=title,
            body=body,
            tag=reminder_id or DEFAULT_PUSH_TAG,
            icon=self.config.icon,
            badge=self.config.badge,
            data={"reminderId": reminder_id, "isOverdue": False},
            vibrate=list(PUSH_VIBRATE),
            actions=self._actions(),
        )

    async def _display(self, notification: DisplayedNotification) -> bool:
        try:
            self.capabilities.require(NOTIFICATIONS)
        except UnsupportedCapability:
            logger.debug(f"Notifications unavailable, skipping '{notification.tag}'")
            return False

        await self.surface.show(notification)
        logger.info(f"Displayed notification '{notification.tag}': {notification.title}")
        return True

    async def dispatch(self, reminder: Reminder, is_overdue: bool) -> bool:
        """Display a notification for a due reminder.

        Returns:
            True if the notification was displayed
        """
        return await self._display(self.render(reminder, is_overdue))

    async def dispatch_push(self, payload: Optional[str]) -> bool:
        """Display a notification for an incoming push message."""
        return await self._display(self.render_push(payload))
