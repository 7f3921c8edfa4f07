"""Sync triggers that run the evaluate and dispatch pipeline."""

import logging
from datetime import datetime
from typing import Callable

import pytz

from reminder_worker.config import WorkerConfig
from reminder_worker.errors import SyncEvaluationFailed
from .dispatcher import NotificationDispatcher
from .evaluator import evaluate
from .store import ReminderStore

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Runs a reminder check on one-shot and periodic sync events."""

    def __init__(
        self,
        store: ReminderStore,
        dispatcher: NotificationDispatcher,
        config: WorkerConfig,
        clock: Callable[[], datetime] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.config = config
        self.tz = pytz.timezone(config.timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            return now
        return now.astimezone(self.tz)

    async def run_pass(self) -> int:
        """Read the store, evaluate and dispatch.

        A reminder whose notification cannot be displayed is logged and
        skipped; the rest of the pass continues.

        Raises:
            SyncEvaluationFailed: The store could not be read or evaluated
        """
        try:
            reminders = self.store.load()
            now = self.now()
            due = evaluate(reminders, now)
        except Exception as e:
            raise SyncEvaluationFailed(str(e)) from e

        dispatched = 0
        for reminder, result in due:
            try:
                if await self.dispatcher.dispatch(reminder, result.is_overdue):
                    dispatched += 1
            except Exception as e:
                logger.error(f"Could not notify about reminder {reminder.id}: {e}")

        logger.info(f"Reminder check at {now:%Y-%m-%d %H:%M}: {len(due)} due, {dispatched} notified")
        return dispatched

    async def _guarded_pass(self, trigger: str) -> int:
        try:
            return await self.run_pass()
        except SyncEvaluationFailed as e:
            logger.error(f"Error syncing vaccination reminders ({trigger}): {e}")
            return 0

    async def on_one_shot_sync(self, tag: str) -> int:
        """Handle a one-shot sync request.

        Returns:
            Number of notifications displayed (0 for foreign tags or failures)
        """
        if tag != self.config.sync_tag:
            logger.debug(f"Ignoring sync for tag '{tag}'")
            return 0
        return await self._guarded_pass("sync")

    async def on_periodic_sync(self, tag: str) -> int:
        """Handle a periodic sync tick."""
        if tag != self.config.periodic_sync_tag:
            logger.debug(f"Ignoring periodic sync for tag '{tag}'")
            return 0
        return await self._guarded_pass("periodic sync")
