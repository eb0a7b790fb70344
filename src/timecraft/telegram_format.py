"""Telegram message formatting utilities."""

import telegramify_markdown
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from .core.snapshot import DashboardSnapshot
from .progress import ProgressEvent, Stage

MAX_CHUNK = 4000
BUTTON_TITLE_LENGTH = 40

STAGE_LABELS = {
    Stage.INIT: "Starting",
    Stage.LOADING_CALENDAR: "Calendar",
    Stage.LOADING_TASKS: "Tasks",
    Stage.RECONCILING_SUGGESTIONS: "Suggestions",
    Stage.OPTIMIZING: "Optimizing",
    Stage.COMPLETE: "Done",
    Stage.ERROR: "Problem",
}


async def send_markdown(bot_or_msg, text: str, *, chat_id: int | None = None, reply_markup=None):
    """Send markdown text to Telegram, converting to MarkdownV2.

    bot_or_msg: a Bot instance (pass chat_id) or an Update.message (calls reply_text).
    The keyboard, if any, is attached to the last chunk.
    """
    converted = telegramify_markdown.markdownify(text)
    chunks = [converted[i : i + MAX_CHUNK] for i in range(0, len(converted), MAX_CHUNK)] or [""]
    for i, chunk in enumerate(chunks):
        markup = reply_markup if i == len(chunks) - 1 else None
        if chat_id is not None:
            await bot_or_msg.send_message(
                chat_id=chat_id, text=chunk, parse_mode="MarkdownV2", reply_markup=markup
            )
        else:
            await bot_or_msg.reply_text(chunk, parse_mode="MarkdownV2", reply_markup=markup)


def progress_text(event: ProgressEvent) -> str:
    """Single status line for the live progress message."""
    label = STAGE_LABELS.get(event.stage, event.stage.value)
    text = f"{label}: {event.message}"
    total = event.data.get("total")
    if event.stage == Stage.OPTIMIZING and total:
        text += f" [{event.data.get('processed', 0)}/{total}]"
    return text


def suggestion_keyboard(snapshot: DashboardSnapshot) -> InlineKeyboardMarkup | None:
    """One accept button per suggestion, grouped by task.

    Callback data is ``accept:<task_id>:<index>``.
    """
    rows = []
    for task in snapshot.overdue_tasks + snapshot.due_today_tasks:
        suggestion_set = snapshot.task_suggestions.get(task.id)
        if suggestion_set is None:
            continue
        for index, suggestion in enumerate(suggestion_set.suggestions):
            title = suggestion.new_title
            if len(title) > BUTTON_TITLE_LENGTH:
                title = title[: BUTTON_TITLE_LENGTH - 1] + "…"
            rows.append(
                [InlineKeyboardButton(title, callback_data=f"accept:{task.id}:{index}")]
            )
    return InlineKeyboardMarkup(rows) if rows else None


def parse_accept_data(data: str) -> tuple[str, int] | None:
    """Task id and suggestion index from accept callback data, or None."""
    match data.split(":"):
        case ["accept", task_id, index] if task_id and index.isdigit():
            return task_id, int(index)
        case _:
            return None
