"""Shared test fixtures for the reminder worker test suite."""

import json
import os
import sys
import tempfile
from datetime import datetime
from unittest.mock import AsyncMock
from urllib.parse import urlparse

import pytest
import pytz
import requests

# Add parent directory to path so we can import reminder_worker modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reminder_worker.config import WorkerConfig
from reminder_worker.core.capabilities import CapabilitySet
from reminder_worker.db import init_db, close_db, get_session, Setting
from reminder_worker.services import InMemoryNotificationSurface, Reminder
from reminder_worker.worker import ReminderWorker

ORIGIN = "http://origin.test"

ASSETS = {
    "/": b"<html>app shell</html>",
    "/static/js/bundle.js": b"console.log('app');",
    "/static/css/main.css": b"body {}",
    "/favicon.png": b"\x89PNG icon",
    "/badge.png": b"\x89PNG badge",
}


def make_response(url, status_code=200, content=b"", content_type="text/plain"):
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.headers["Content-Type"] = content_type
    response.url = url
    return response


class FakeHttp:
    """Stands in for requests.Session with a fixed set of assets."""

    def __init__(self, assets=None, failing=(), offline=False):
        self.assets = dict(ASSETS if assets is None else assets)
        self.failing = set(failing)
        self.offline = offline
        self.calls = []

    def request(self, method, url, timeout=None):
        self.calls.append((method, url))
        path = urlparse(url).path or "/"
        if self.offline or path in self.failing:
            raise requests.ConnectionError(f"cannot reach {url}")
        if path not in self.assets:
            return make_response(url, 404, b"not found")
        return make_response(url, 200, self.assets[path])

    def get(self, url, timeout=None):
        return self.request("GET", url, timeout=timeout)


def reminder_record(**overrides):
    """A stored reminder record in the foreground app's format."""
    record = {
        "id": "r1",
        "name": "MMR Dose",
        "scheduledDate": "2024-05-01",
        "scheduledTime": "09:00",
        "status": "pending",
        "priority": "normal",
    }
    record.update(overrides)
    return record


def make_reminder(**overrides) -> Reminder:
    return Reminder.from_dict(reminder_record(**overrides))


@pytest.fixture(autouse=True)
def reset_db():
    """Make sure no test inherits another test's database."""
    yield
    close_db()


@pytest.fixture
def test_db():
    """Create a temporary store database."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    init_db(db_path)

    yield db_path

    # Cleanup
    close_db()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def store_reminders(test_db):
    """Write a reminder collection the way the foreground app stores it."""
    def write(records, key="vaccination_reminders"):
        with get_session() as session:
            setting = session.query(Setting).filter(Setting.key == key).first()
            value = records if isinstance(records, str) else json.dumps(records)
            if setting:
                setting.value = value
            else:
                session.add(Setting(key=key, value=value))
        return records

    return write


@pytest.fixture
def worker_config(tmp_path, test_db):
    """Worker configuration pointing at temporary store and cache locations."""
    return WorkerConfig(
        cache_root=str(tmp_path / "cache"),
        origin=ORIGIN,
        store_path=test_db,
        timezone="UTC",
        app_base_url="https://app.test",
    )


@pytest.fixture
def all_capabilities():
    return CapabilitySet(notifications=True, periodic_sync=True, delayed_scheduling=True)


@pytest.fixture
def surface():
    return InMemoryNotificationSurface()


@pytest.fixture
def fixed_now():
    """2024-05-03 10:00 UTC."""
    return pytz.UTC.localize(datetime(2024, 5, 3, 10, 0))


@pytest.fixture
def make_worker(worker_config, surface, fixed_now):
    """Build a worker. Call it inside async tests so the event loop is detected."""
    def build(config=None, http=None, opener=None, job_queue=None, now=None):
        return ReminderWorker(
            config or worker_config,
            surface,
            opener or AsyncMock(),
            job_queue=job_queue,
            http=http or FakeHttp(),
            clock=lambda: now or fixed_now,
        )

    return build
