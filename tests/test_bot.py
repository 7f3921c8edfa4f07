"""Tests for the Telegram notification surface and handlers."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from telegram.error import BadRequest

from reminder_worker.bot.main import build_worker, notification_clicked, status_command, sync_command
from reminder_worker.bot.surface import (
    MAX_CALLBACK_BYTES,
    TelegramNotificationSurface,
    TelegramWindowOpener,
    build_keyboard,
    callback_data,
    format_notification,
    parse_callback_data,
)
from reminder_worker.config import WorkerConfig
from reminder_worker.services import NotificationDispatcher
from reminder_worker.worker import ReminderWorker
from conftest import FakeHttp, make_reminder, reminder_record

CHAT_ID = 12345


@pytest.fixture
def bot():
    bot = AsyncMock()
    message_ids = iter(range(100, 200))
    bot.send_message.side_effect = lambda **kwargs: Mock(message_id=next(message_ids))
    return bot


@pytest.fixture
def telegram_surface(bot):
    return TelegramNotificationSurface(bot, CHAT_ID)


@pytest.fixture
def dispatcher(telegram_surface, all_capabilities):
    return NotificationDispatcher(telegram_surface, all_capabilities, WorkerConfig())


class TestCallbackData:
    def test_round_trip(self):
        assert parse_callback_data(callback_data("snooze", "r1")) == ("snooze", "r1")

    def test_open_button_is_body_click(self):
        assert parse_callback_data(callback_data("", "r1")) == (None, "r1")

    def test_garbage(self):
        assert parse_callback_data(None) == (None, "")


class TestFormatting:
    def test_html_escaped(self, dispatcher):
        notification = dispatcher.render(make_reminder(name="<Polio> & co"), is_overdue=True)

        text = format_notification(notification)

        assert text.startswith("<b>⚠️ Overdue Vaccination</b>")
        assert "&lt;Polio&gt; &amp; co was due on 2024-05-01" in text

    def test_keyboard(self, dispatcher):
        keyboard = build_keyboard(dispatcher.render(make_reminder(), is_overdue=False))

        buttons = keyboard.inline_keyboard[0]
        assert [b.text for b in buttons] == ["Mark Complete", "Snooze 1hr", "Open"]
        assert [b.callback_data for b in buttons] == ["mark-complete|r1", "snooze|r1", "|r1"]


class TestTelegramSurface:
    @pytest.mark.asyncio
    async def test_sends_message(self, dispatcher, bot):
        await dispatcher.dispatch(make_reminder(), is_overdue=True)

        kwargs = bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == CHAT_ID
        assert kwargs["parse_mode"] == "HTML"
        bot.pin_chat_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replacing_deletes_previous_message(self, dispatcher, bot, telegram_surface):
        await dispatcher.dispatch(make_reminder(), is_overdue=True)
        await dispatcher.dispatch(make_reminder(), is_overdue=True)

        bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=100)
        assert len(telegram_surface.live()) == 1

    @pytest.mark.asyncio
    async def test_critical_is_pinned(self, dispatcher, bot):
        await dispatcher.dispatch(make_reminder(priority="critical"), is_overdue=False)

        bot.pin_chat_message.assert_awaited_once_with(
            chat_id=CHAT_ID, message_id=100, disable_notification=True
        )

    @pytest.mark.asyncio
    async def test_pin_failure_still_displays(self, dispatcher, bot, telegram_surface):
        bot.pin_chat_message.side_effect = BadRequest("Not enough rights")

        assert await dispatcher.dispatch(make_reminder(priority="critical"), is_overdue=False) is True
        assert telegram_surface.get("r1") is not None

    @pytest.mark.asyncio
    async def test_close_deletes_message(self, dispatcher, bot, telegram_surface):
        await dispatcher.dispatch(make_reminder(), is_overdue=False)

        await telegram_surface.close("r1")

        bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=100)

    def test_unavailable_without_chat(self, bot):
        assert TelegramNotificationSurface(bot, None).available is False


@pytest.mark.asyncio
async def test_window_opener_sends_link(bot):
    opener = TelegramWindowOpener(bot, CHAT_ID, "https://app.test/")

    await opener.open_window("/vaccination-dashboard?action=snooze&id=r1")

    markup = bot.send_message.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][0].url == "https://app.test/vaccination-dashboard?action=snooze&id=r1"


def make_context(worker):
    context = MagicMock()
    context.application.bot_data = {"worker": worker}
    return context


def make_update(data=None):
    update = MagicMock()
    update.callback_query.data = data
    update.callback_query.answer = AsyncMock()
    update.callback_query.message.delete = AsyncMock()
    update.message.reply_text = AsyncMock()
    return update


class TestHandlers:
    @pytest.mark.asyncio
    async def test_button_press_routes_click(self, make_worker, store_reminders, surface):
        opener = AsyncMock()
        worker = make_worker(opener=opener)
        store_reminders([reminder_record()])
        await worker.sync.on_one_shot_sync("vaccination-reminder-sync")
        update = make_update("mark-complete|r1")

        await notification_clicked(update, make_context(worker))

        update.callback_query.answer.assert_awaited_once()
        update.callback_query.message.delete.assert_not_awaited()
        opener.open_window.assert_awaited_once_with("/vaccination-dashboard?action=complete&id=r1")
        assert surface.get("r1") is None

    @pytest.mark.asyncio
    async def test_stale_message_is_deleted(self, make_worker):
        opener = AsyncMock()
        worker = make_worker(opener=opener)
        update = make_update("|r9")

        await notification_clicked(update, make_context(worker))

        update.callback_query.message.delete.assert_awaited_once()
        opener.open_window.assert_awaited_once_with("/vaccination-dashboard")

    @pytest.mark.asyncio
    async def test_callback_without_tag_ignored(self, make_worker):
        opener = AsyncMock()
        worker = make_worker(opener=opener)

        await notification_clicked(make_update("garbage"), make_context(worker))

        opener.open_window.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_command(self, make_worker, store_reminders):
        worker = make_worker()
        store_reminders([reminder_record()])
        update = make_update()

        await sync_command(update, make_context(worker))

        update.message.reply_text.assert_awaited_once_with("Reminder check done, 1 notification(s) shown")

    @pytest.mark.asyncio
    async def test_status_command(self, make_worker):
        update = make_update()

        await status_command(update, make_context(make_worker()))

        text = update.message.reply_text.call_args.args[0]
        assert "Active version: none" in text
        assert "notifications=yes" in text


LONG_ID = "vaccination-reminder-" + "x" * 40


def button_data(bot):
    markup = bot.send_message.call_args.kwargs["reply_markup"]
    return [button.callback_data for button in markup.inline_keyboard[0]]


class TestLongReminderIds:
    """Button data stays within Telegram's limit whatever the reminder id."""

    @pytest.mark.asyncio
    async def test_callback_data_fits(self, dispatcher, bot):
        await dispatcher.dispatch(make_reminder(id=LONG_ID), is_overdue=True)

        sizes = [len(data.encode("utf-8")) for data in button_data(bot)]
        assert max(sizes) <= MAX_CALLBACK_BYTES

    @pytest.mark.asyncio
    async def test_multibyte_id_fits(self, dispatcher, bot):
        await dispatcher.dispatch(make_reminder(id="ü" * 30), is_overdue=True)

        assert all(len(data.encode("utf-8")) <= MAX_CALLBACK_BYTES for data in button_data(bot))

    @pytest.mark.asyncio
    async def test_short_id_kept_as_is(self, dispatcher, bot):
        await dispatcher.dispatch(make_reminder(id="r1"), is_overdue=True)

        assert button_data(bot) == ["mark-complete|r1", "snooze|r1", "|r1"]

    @pytest.mark.asyncio
    async def test_press_resolves_long_id(self, bot, telegram_surface, worker_config, fixed_now, store_reminders):
        opener = AsyncMock()
        worker = ReminderWorker(
            worker_config, telegram_surface, opener, http=FakeHttp(), clock=lambda: fixed_now
        )
        store_reminders([reminder_record(id=LONG_ID)])
        await worker.sync.on_one_shot_sync("vaccination-reminder-sync")
        update = make_update(button_data(bot)[0])

        await notification_clicked(update, make_context(worker))

        opener.open_window.assert_awaited_once_with(
            f"/vaccination-dashboard?action=complete&id={LONG_ID}"
        )
        assert telegram_surface.get(LONG_ID) is None
        bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=100)

    @pytest.mark.asyncio
    async def test_unknown_hashed_key_opens_dashboard(self, bot, telegram_surface, worker_config, fixed_now):
        opener = AsyncMock()
        worker = ReminderWorker(
            worker_config, telegram_surface, opener, http=FakeHttp(), clock=lambda: fixed_now
        )
        update = make_update("snooze|#0123456789abcdef01234567")

        await notification_clicked(update, make_context(worker))

        update.callback_query.message.delete.assert_awaited_once()
        opener.open_window.assert_awaited_once_with("/vaccination-dashboard")

    @pytest.mark.asyncio
    async def test_tag_with_hash_prefix_is_hashed(self, dispatcher, bot, telegram_surface):
        await dispatcher.dispatch(make_reminder(id="#7"), is_overdue=False)

        key = parse_callback_data(button_data(bot)[0])[1]
        assert key != "#7"
        assert telegram_surface.tag_for(key) == "#7"


def test_build_worker_without_bot(worker_config):
    with patch("reminder_worker.bot.main.get", return_value=None):
        worker = build_worker(worker_config)

    assert worker.capabilities.notifications is False
    assert worker.capabilities.periodic_sync is False
