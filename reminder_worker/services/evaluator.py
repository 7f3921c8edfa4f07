"""Due-reminder evaluation."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Tuple

from .store import Reminder, STATUS_PENDING


@dataclass(frozen=True)
class DueEvaluationResult:
    due: bool
    is_overdue: bool


def check_reminder(reminder: Reminder, today: str, current_time: str) -> DueEvaluationResult:
    """Evaluate a single reminder against a calendar date and a clock time.

    ISO dates and zero-padded HH:MM times compare correctly as strings.
    """
    if reminder.status != STATUS_PENDING:
        return DueEvaluationResult(due=False, is_overdue=False)

    is_overdue = reminder.scheduled_date < today
    due = is_overdue or (
        reminder.scheduled_date == today and reminder.scheduled_time <= current_time
    )
    return DueEvaluationResult(due=due, is_overdue=is_overdue)


def evaluate(
    reminders: Iterable[Reminder], now: datetime
) -> List[Tuple[Reminder, DueEvaluationResult]]:
    """Return the pending reminders that are due at ``now``.

    Args:
        reminders: Reminder collection read from the store
        now: Current instant, already in the timezone reminders are written in

    Returns:
        (reminder, result) pairs for due reminders only
    """
    today = now.strftime("%Y-%m-%d")
    current_time = now.strftime("%H:%M")

    due = []
    for reminder in reminders:
        result = check_reminder(reminder, today, current_time)
        if result.due:
            due.append((reminder, result))
    return due
