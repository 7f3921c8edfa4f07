"""Read-only access to the reminders persisted by the foreground app."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from reminder_worker.db import get_session, has_table, init_db, is_initialized, Setting

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_SNOOZED = "snoozed"

PRIORITY_NORMAL = "normal"
PRIORITY_CRITICAL = "critical"


@dataclass(frozen=True)
class Reminder:
    """A vaccination reminder as stored by the foreground app."""
    id: str
    name: str
    scheduled_date: str  # YYYY-MM-DD
    scheduled_time: str  # HH:MM
    status: str = STATUS_PENDING
    priority: str = PRIORITY_NORMAL
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Reminder":
        """Build a Reminder from a stored camelCase record."""
        reminder_id = record.get("id")
        if reminder_id is None or reminder_id == "":
            raise ValueError("reminder record has no id")
        if not record.get("scheduledDate"):
            raise ValueError(f"reminder {reminder_id} has no scheduledDate")
        if not record.get("scheduledTime"):
            raise ValueError(f"reminder {reminder_id} has no scheduledTime")

        return cls(
            id=str(reminder_id),
            name=str(record.get("name") or record.get("title") or ""),
            scheduled_date=str(record["scheduledDate"]),
            scheduled_time=str(record["scheduledTime"]),
            status=str(record.get("status") or ""),
            priority=str(record.get("priority") or PRIORITY_NORMAL),
            description=record.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "scheduledDate": self.scheduled_date,
            "scheduledTime": self.scheduled_time,
            "status": self.status,
            "priority": self.priority,
        }


def parse_reminders(raw: Optional[str]) -> List[Reminder]:
    """Parse the JSON array stored under the reminders key.

    Anything that is not a JSON array yields no reminders. Records that cannot
    be turned into a Reminder are skipped.
    """
    if not raw:
        return []

    try:
        records = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Stored reminders are not valid JSON: {e}")
        return []

    if not isinstance(records, list):
        logger.warning(f"Stored reminders are a {type(records).__name__}, expected a list")
        return []

    reminders = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning(f"Skipping non-object reminder record: {record!r}")
            continue
        try:
            reminders.append(Reminder.from_dict(record))
        except ValueError as e:
            logger.warning(f"Skipping reminder record: {e}")
    return reminders


class ReminderStore:
    """Reads the reminder collection from the shared SQLite store."""

    def __init__(self, db_path: str, key: str):
        self.db_path = db_path
        self.key = key

    def _ensure_open(self) -> bool:
        if is_initialized():
            return True
        if not Path(self.db_path).exists():
            return False
        init_db(self.db_path, create_tables=False)
        return True

    def load(self) -> List[Reminder]:
        """Return every stored reminder, or an empty list when there is no store."""
        if not self._ensure_open():
            logger.debug(f"Reminder store {self.db_path} does not exist yet")
            return []

        if not has_table(Setting.__tablename__):
            logger.debug(f"Reminder store {self.db_path} has no {Setting.__tablename__} table yet")
            return []

        with get_session() as session:
            setting = session.query(Setting).filter(Setting.key == self.key).first()
            raw = setting.value if setting else None

        reminders = parse_reminders(raw)
        logger.debug(f"Loaded {len(reminders)} reminders from '{self.key}'")
        return reminders
