"""Telegram chat as the notification surface."""

import hashlib
import html
import logging
from typing import Dict, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import TelegramError

from reminder_worker.services.dispatcher import DisplayedNotification, NotificationSurface

logger = logging.getLogger(__name__)

OPEN_ACTION = ""
CALLBACK_SEPARATOR = "|"
MAX_CALLBACK_BYTES = 64  # Telegram limit on button callback data
HASHED_KEY_PREFIX = "#"


def callback_data(action: str, key: str) -> str:
    return f"{action}{CALLBACK_SEPARATOR}{key}"


def parse_callback_data(data: str):
    """Split callback data into (action, key). An empty action is a body click."""
    action, _, key = (data or "").partition(CALLBACK_SEPARATOR)
    return (action or None), key


def callback_key(notification: DisplayedNotification) -> str:
    """Key identifying ``notification`` in its button callback data.

    Tags short enough to fit in the callback data are used as they are, so
    buttons of messages sent before a restart still name their reminder.
    Longer tags are replaced by a hash, resolved through the surface that
    sent the message.
    """
    tag = notification.tag
    reserved = len(CALLBACK_SEPARATOR) + max(
        (len(action.action.encode("utf-8")) for action in notification.actions), default=0
    )
    if not tag.startswith(HASHED_KEY_PREFIX) and len(tag.encode("utf-8")) + reserved <= MAX_CALLBACK_BYTES:
        return tag
    return HASHED_KEY_PREFIX + hashlib.sha256(tag.encode("utf-8")).hexdigest()[:24]


def format_notification(notification: DisplayedNotification) -> str:
    return f"<b>{html.escape(notification.title)}</b>\n\n{html.escape(notification.body)}"


def build_keyboard(notification: DisplayedNotification) -> InlineKeyboardMarkup:
    """One button per notification action plus an Open button for a plain click."""
    key = callback_key(notification)
    buttons = [
        InlineKeyboardButton(action.title, callback_data=callback_data(action.action, key))
        for action in notification.actions
    ]
    buttons.append(InlineKeyboardButton("Open", callback_data=callback_data(OPEN_ACTION, key)))
    return InlineKeyboardMarkup([buttons])


def resolve_tag(surface: NotificationSurface, key: str) -> Optional[str]:
    """Map a callback key back to a notification tag, None if it cannot be resolved."""
    if isinstance(surface, TelegramNotificationSurface):
        return surface.tag_for(key)
    return key


class TelegramNotificationSurface(NotificationSurface):
    """Displays notifications as chat messages.

    Replacing or closing a notification deletes its message. Notifications
    that require interaction are pinned so they stay visible until handled.
    """

    def __init__(self, bot, chat_id: int):
        super().__init__()
        self.bot = bot
        self.chat_id = chat_id
        self.available = bool(chat_id)
        self._messages: Dict[str, int] = {}
        self._tags: Dict[str, str] = {}  # callback key -> tag

    def tag_for(self, key: str) -> Optional[str]:
        tag = self._tags.get(key)
        if tag is not None:
            return tag
        if key.startswith(HASHED_KEY_PREFIX):
            return None
        return key

    async def _render(self, notification, previous):
        if previous is not None:
            await self._delete(notification.tag)

        message = await self.bot.send_message(
            chat_id=self.chat_id,
            text=format_notification(notification),
            parse_mode="HTML",
            reply_markup=build_keyboard(notification),
        )
        self._messages[notification.tag] = message.message_id
        self._tags[callback_key(notification)] = notification.tag

        if notification.require_interaction:
            try:
                await self.bot.pin_chat_message(
                    chat_id=self.chat_id,
                    message_id=message.message_id,
                    disable_notification=True,
                )
            except TelegramError as e:
                logger.warning(f"Could not pin notification '{notification.tag}': {e}")

    async def _remove(self, notification):
        await self._delete(notification.tag)

    async def _delete(self, tag: str):
        for key in [k for k, t in self._tags.items() if t == tag]:
            del self._tags[key]
        message_id = self._messages.pop(tag, None)
        if message_id is None:
            return
        try:
            await self.bot.delete_message(chat_id=self.chat_id, message_id=message_id)
        except TelegramError as e:
            logger.warning(f"Could not delete notification '{tag}': {e}")


class TelegramWindowOpener:
    """Opens application URLs by sending a link button to the chat."""

    def __init__(self, bot, chat_id: int, base_url: str):
        self.bot = bot
        self.chat_id = chat_id
        self.base_url = base_url.rstrip("/")

    async def open_window(self, path: str):
        url = f"{self.base_url}{path}"
        await self.bot.send_message(
            chat_id=self.chat_id,
            text="Continue in the vaccination dashboard:",
            reply_markup=InlineKeyboardMarkup([[InlineKeyboardButton("Open dashboard", url=url)]]),
        )
