"""Services for the reminder worker."""

from .store import Reminder, ReminderStore
from .evaluator import evaluate, DueEvaluationResult
from .dispatcher import NotificationDispatcher, NotificationSurface, InMemoryNotificationSurface, DisplayedNotification
from .sync import SyncCoordinator
from .router import ActionRouter, LoggingOpener
from .bridge import ForegroundBridge, TimerRegistry
from .cache import OfflineCacheManager

__all__ = [
    "Reminder", "ReminderStore", "evaluate", "DueEvaluationResult",
    "NotificationDispatcher", "NotificationSurface", "InMemoryNotificationSurface", "DisplayedNotification",
    "SyncCoordinator", "ActionRouter", "LoggingOpener", "ForegroundBridge", "TimerRegistry", "OfflineCacheManager",
]
