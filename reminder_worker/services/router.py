"""Routing notification clicks back into the application."""

import logging
from typing import Optional
from urllib.parse import urlencode

from reminder_worker.config import WorkerConfig
from .dispatcher import (
    DisplayedNotification,
    NotificationSurface,
    ACTION_MARK_COMPLETE,
    ACTION_SNOOZE,
)

logger = logging.getLogger(__name__)

# Notification action -> dashboard ``action`` query value
ACTION_QUERY = {
    ACTION_MARK_COMPLETE: "complete",
    ACTION_SNOOZE: "snooze",
}


class ActionRouter:
    """Closes clicked notifications and opens the dashboard with the requested action.

    The router never touches reminder state. Completing or snoozing is up to
    the foreground app once the dashboard opens.
    """

    def __init__(self, surface: NotificationSurface, opener, config: WorkerConfig):
        self.surface = surface
        self.opener = opener
        self.config = config

    def navigation_for(self, action: Optional[str], reminder_id: Optional[str]) -> str:
        query_action = ACTION_QUERY.get(action or "")
        if query_action is None or reminder_id is None:
            return self.config.dashboard_path
        query = urlencode({"action": query_action, "id": reminder_id})
        return f"{self.config.dashboard_path}?{query}"

    async def on_notification_click(self, notification: DisplayedNotification, action: Optional[str] = None) -> str:
        """
        Handle a click on a displayed notification.

        Args:
            notification: The clicked notification
            action: Action button identifier, or None for a click on the body

        Returns:
            The URL the application was opened at
        """
        await self.surface.close(notification.tag)

        url = self.navigation_for(action, notification.reminder_id)
        await self.opener.open_window(url)
        logger.info(f"Notification '{notification.tag}' clicked (action={action or 'none'}), opened {url}")
        return url


class LoggingOpener:
    """Window opener for hosts without a client to navigate. Only logs the URL."""

    async def open_window(self, url: str):
        logger.info(f"No client to open {url}")
