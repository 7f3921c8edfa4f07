"""Tests for notification rendering and display."""

import json

import pytest

from reminder_worker.config import WorkerConfig
from reminder_worker.core.capabilities import CapabilitySet
from reminder_worker.services.dispatcher import (
    NotificationDispatcher,
    InMemoryNotificationSurface,
    OVERDUE_TITLE,
    REMINDER_TITLE,
    DEFAULT_PUSH_BODY,
)
from conftest import make_reminder


@pytest.fixture
def dispatcher(surface, all_capabilities):
    return NotificationDispatcher(surface, all_capabilities, WorkerConfig())


class TestRendering:
    """Title, body and flags of reminder notifications."""

    def test_overdue_notification(self, dispatcher):
        notification = dispatcher.render(make_reminder(), is_overdue=True)

        assert notification.title == OVERDUE_TITLE
        assert "Overdue" in notification.title
        assert notification.body == "MMR Dose was due on 2024-05-01"
        assert notification.data == {"reminderId": "r1", "isOverdue": True}

    def test_on_time_notification(self, dispatcher):
        reminder = make_reminder(scheduledDate="2024-05-03", scheduledTime="09:00")

        notification = dispatcher.render(reminder, is_overdue=False)

        assert notification.title == REMINDER_TITLE
        assert notification.body == "MMR Dose is scheduled for today at 09:00"
        assert notification.data == {"reminderId": "r1", "isOverdue": False}

    def test_tag_is_reminder_id(self, dispatcher):
        notification = dispatcher.render(make_reminder(id="abc-123"), is_overdue=False)

        assert notification.tag == "abc-123"

    @pytest.mark.parametrize("priority,expected", [
        ("critical", True),
        ("normal", False),
    ])
    def test_require_interaction_follows_priority(self, dispatcher, priority, expected):
        notification = dispatcher.render(make_reminder(priority=priority), is_overdue=False)

        assert notification.require_interaction is expected

    def test_actions_are_complete_and_snooze(self, dispatcher):
        notification = dispatcher.render(make_reminder(), is_overdue=True)

        assert [a.action for a in notification.actions] == ["mark-complete", "snooze"]
        assert all(a.title and a.icon for a in notification.actions)

    def test_display_contract(self, dispatcher):
        payload = dispatcher.render(make_reminder(priority="critical"), is_overdue=True).to_dict()

        assert payload["tag"] == "r1"
        assert payload["icon"] == "/favicon.png"
        assert payload["badge"] == "/badge.png"
        assert payload["requireInteraction"] is True
        assert payload["data"] == {"reminderId": "r1", "isOverdue": True}
        assert "vibrate" not in payload
        assert payload["actions"][0] == {
            "action": "mark-complete",
            "title": "Mark Complete",
            "icon": "/icons/complete.png",
        }


class TestDisplay:
    """Displaying through the surface."""

    @pytest.mark.asyncio
    async def test_dispatch_shows_notification(self, dispatcher, surface):
        shown = await dispatcher.dispatch(make_reminder(), is_overdue=True)

        assert shown is True
        assert surface.get("r1").title == OVERDUE_TITLE

    @pytest.mark.asyncio
    async def test_same_tag_replaces_instead_of_duplicating(self, dispatcher, surface):
        reminder = make_reminder()

        await dispatcher.dispatch(reminder, is_overdue=True)
        await dispatcher.dispatch(reminder, is_overdue=True)

        assert [n.tag for n in surface.live()] == ["r1"]
        assert len(surface.shown) == 2

    @pytest.mark.asyncio
    async def test_different_reminders_coexist(self, dispatcher, surface):
        await dispatcher.dispatch(make_reminder(id="a"), is_overdue=False)
        await dispatcher.dispatch(make_reminder(id="b"), is_overdue=False)

        assert sorted(n.tag for n in surface.live()) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_skipped_without_notification_capability(self, surface):
        dispatcher = NotificationDispatcher(surface, CapabilitySet(), WorkerConfig())

        shown = await dispatcher.dispatch(make_reminder(), is_overdue=True)

        assert shown is False
        assert surface.live() == []

    @pytest.mark.asyncio
    async def test_close_removes_live_notification(self, dispatcher, surface):
        await dispatcher.dispatch(make_reminder(), is_overdue=False)

        await surface.close("r1")
        await surface.close("r1")

        assert surface.get("r1") is None


class TestPush:
    """Push-originated notifications."""

    def test_defaults_without_payload(self, dispatcher):
        notification = dispatcher.render_push(None)

        assert notification.title == REMINDER_TITLE
        assert notification.body == DEFAULT_PUSH_BODY
        assert notification.vibrate == [100, 50, 100]
        assert [a.action for a in notification.actions] == ["mark-complete", "snooze"]

    def test_plain_text_payload_is_body(self, dispatcher):
        notification = dispatcher.render_push("Polio booster due this week")

        assert notification.body == "Polio booster due this week"
        assert notification.title == REMINDER_TITLE

    def test_json_payload(self, dispatcher):
        payload = json.dumps({"title": "Clinic update", "body": "Bring your card", "reminderId": 42})

        notification = dispatcher.render_push(payload)

        assert notification.title == "Clinic update"
        assert notification.body == "Bring your card"
        assert notification.tag == "42"
        assert notification.reminder_id == "42"

    def test_json_payload_without_text_uses_defaults(self, dispatcher):
        notification = dispatcher.render_push("{}")

        assert notification.title == REMINDER_TITLE
        assert notification.body == DEFAULT_PUSH_BODY

    @pytest.mark.asyncio
    async def test_dispatch_push(self, dispatcher, surface):
        assert await dispatcher.dispatch_push("hello") is True
        assert surface.get("push").body == "hello"


def test_unavailable_in_memory_surface():
    assert InMemoryNotificationSurface(available=False).available is False
