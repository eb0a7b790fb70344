"""Tests for Telegram formatting helpers."""

import asyncio
from datetime import date, datetime
from unittest.mock import AsyncMock

from timecraft.core.snapshot import DashboardSnapshot
from timecraft.core.suggestions import Suggestion, SuggestionSet
from timecraft.core.tasks import Task
from timecraft.progress import ProgressEvent, Stage
from timecraft.telegram_format import (
    BUTTON_TITLE_LENGTH,
    parse_accept_data,
    progress_text,
    send_markdown,
    suggestion_keyboard,
)


def make_set(task_id: str, title: str = "Option") -> SuggestionSet:
    return SuggestionSet(
        task_id=task_id,
        suggestions=tuple(
            Suggestion(new_title=f"{title} {i}", reason="", estimated_duration_minutes=10) for i in range(5)
        ),
    )


class TestProgressText:
    def test_stage_label(self):
        assert progress_text(ProgressEvent(Stage.LOADING_CALENDAR, "Loading calendar...")) == (
            "Calendar: Loading calendar..."
        )

    def test_optimizing_counts(self):
        event = ProgressEvent(Stage.OPTIMIZING, "Optimizing 2/3: report", {"processed": 1, "total": 3})
        assert progress_text(event) == "Optimizing: Optimizing 2/3: report [1/3]"


class TestSuggestionKeyboard:
    def test_one_button_per_suggestion(self):
        today = date(2025, 1, 15)
        snapshot = DashboardSnapshot(
            timestamp=datetime(2025, 1, 15, 8),
            overdue_tasks=[Task(id="1", content="report", due_date=today)],
            due_today_tasks=[Task(id="2", content="plumber", due_date=today)],
            task_suggestions={"2": make_set("2")},
        )

        keyboard = suggestion_keyboard(snapshot)

        buttons = [row[0] for row in keyboard.inline_keyboard]
        assert [b.callback_data for b in buttons] == [f"accept:2:{i}" for i in range(5)]
        assert buttons[0].text == "Option 0"

    def test_long_titles_truncated(self):
        snapshot = DashboardSnapshot(
            timestamp=datetime(2025, 1, 15, 8),
            due_today_tasks=[Task(id="1", content="x", due_date=date(2025, 1, 15))],
            task_suggestions={"1": make_set("1", title="A" * 80)},
        )

        text = suggestion_keyboard(snapshot).inline_keyboard[0][0].text

        assert len(text) == BUTTON_TITLE_LENGTH
        assert text.endswith("…")

    def test_no_suggestions(self):
        assert suggestion_keyboard(DashboardSnapshot(timestamp=datetime(2025, 1, 15, 8))) is None


class TestParseAcceptData:
    def test_valid(self):
        assert parse_accept_data("accept:8123:4") == ("8123", 4)

    def test_invalid(self):
        assert parse_accept_data("accept:8123") is None
        assert parse_accept_data("accept::1") is None
        assert parse_accept_data("accept:1:x") is None
        assert parse_accept_data("recap_cancel") is None


class TestSendMarkdown:
    def test_reply_attaches_markup_to_last_chunk(self):
        message = AsyncMock()
        markup = object()

        asyncio.run(send_markdown(message, "word " * 1000, reply_markup=markup))

        calls = message.reply_text.await_args_list
        assert len(calls) == 2
        assert calls[0].kwargs["reply_markup"] is None
        assert calls[1].kwargs["reply_markup"] is markup
        assert all(c.kwargs["parse_mode"] == "MarkdownV2" for c in calls)

    def test_send_to_chat(self):
        bot = AsyncMock()

        asyncio.run(send_markdown(bot, "*hi*", chat_id=123))

        bot.send_message.assert_awaited_once()
        assert bot.send_message.await_args.kwargs["chat_id"] == 123
