"""Telegram bot host for the reminder worker."""

import logging
from typing import Optional

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    filters,
)

from reminder_worker.config import WorkerConfig, get
from reminder_worker.core.events import EventKind
from reminder_worker.scheduler import setup_scheduler
from reminder_worker.services import InMemoryNotificationSurface, LoggingOpener
from reminder_worker.worker import ReminderWorker

from .surface import TelegramNotificationSurface, TelegramWindowOpener, parse_callback_data, resolve_tag

logger = logging.getLogger(__name__)


def _worker(context: ContextTypes.DEFAULT_TYPE) -> ReminderWorker:
    return context.application.bot_data["worker"]


async def notification_clicked(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Route a press on a notification button to the worker."""
    query = update.callback_query
    await query.answer()

    worker = _worker(context)
    action, key = parse_callback_data(query.data)
    if not key:
        logger.debug(f"Ignoring callback without a tag: {query.data!r}")
        return

    tag = resolve_tag(worker.surface, key)
    if tag is None:
        # Hashed key from before a restart: the reminder is unknown, open the plain dashboard
        logger.debug(f"Unknown callback key {key}, opening the dashboard")
        tag, action = key, None

    if worker.surface.get(tag) is None and query.message is not None:
        # Message from before a restart: nothing tracks it, remove it directly
        await query.message.delete()

    await worker.emit(EventKind.NOTIFICATION_CLICK, tag, action)


async def sync_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /sync: run a reminder check now."""
    worker = _worker(context)
    shown = await worker.emit(EventKind.SYNC, worker.config.sync_tag)
    await update.message.reply_text(f"Reminder check done, {shown} notification(s) shown")


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /status."""
    worker = _worker(context)
    lifecycle = worker.lifecycle
    active = lifecycle.active.name if lifecycle.active else "none"
    waiting = lifecycle.waiting.name if lifecycle.waiting else "none"

    text = (
        f"Active version: {active}\n"
        f"Waiting version: {waiting}\n"
        f"Capabilities: {worker.capabilities.describe()}\n"
        f"Live notifications: {len(worker.surface.live())}\n"
        f"Pending deliveries: {len(worker.timers)}"
    )
    await update.message.reply_text(text)


def create_bot() -> Optional[Application]:
    """Create the Telegram application, or None when no bot token is configured."""
    token = get("telegram.bot_token")
    if not token or token == "YOUR_BOT_TOKEN_FROM_BOTFATHER":
        logger.warning("Telegram bot token not configured, notifications will not be displayed")
        return None

    return Application.builder().token(token).build()


def build_worker(config: WorkerConfig, app: Optional[Application] = None) -> ReminderWorker:
    """Create the worker with the Telegram surface when a bot is available."""
    chat_id = get("telegram.chat_id")

    if app is None:
        return ReminderWorker(config, InMemoryNotificationSurface(available=False), LoggingOpener())

    surface = TelegramNotificationSurface(app.bot, chat_id)
    opener = TelegramWindowOpener(app.bot, chat_id, config.app_base_url)
    return ReminderWorker(config, surface, opener, job_queue=app.job_queue)


def attach_worker(app: Application, worker: ReminderWorker):
    """Register handlers and scheduled jobs for ``worker`` on the bot."""
    app.bot_data["worker"] = worker

    chat_id = get("telegram.chat_id")
    chat_filter = filters.Chat(chat_id=chat_id) if chat_id else filters.ALL

    app.add_handler(CallbackQueryHandler(notification_clicked))
    app.add_handler(CommandHandler("sync", sync_command, filters=chat_filter))
    app.add_handler(CommandHandler("status", status_command, filters=chat_filter))

    setup_scheduler(app, worker)
    logger.info("Bot handlers registered")
