"""Telegram command handlers."""

import asyncio
import logging
import queue

from telegram import Update
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from .config import Config, load_config
from .core.snapshot import DashboardSnapshot, format_snapshot
from .errors import ConfigError, TaskSourceError
from .progress import ProgressBroker, Stage
from .telegram_format import parse_accept_data, progress_text, send_markdown, suggestion_keyboard
from .workflows import accept_suggestion, build_aggregator, current_context, get_cache

logger = logging.getLogger(__name__)


def _config(context: ContextTypes.DEFAULT_TYPE) -> Config:
    """Config stored at startup, or a fresh load."""
    return context.bot_data.get("config") or load_config()


# ============== Simple Commands ==============


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hi! I'm TimeCraft. I combine your calendar and Todoist tasks "
        "and suggest clearer titles for what's due.\n\n"
        "Commands:\n"
        "/dashboard - Today's free time, due tasks and suggestions\n"
        "/refresh - Rebuild all suggestions from scratch\n"
        "/context - Show what the model sees\n"
        "/help - Show all commands"
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(
        "*TimeCraft Commands*\n\n"
        "/dashboard - Free slots, overdue and due-today tasks\n"
        "/refresh - Same, but discards cached suggestions first\n"
        "/context - Tasks and appointments sent to the model\n\n"
        "Tap a suggestion button to rename the task in Todoist.",
        parse_mode="Markdown",
    )


async def context_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /context command."""
    config = _config(context)
    try:
        text, updated = await asyncio.to_thread(current_context, config)
    except ConfigError as e:
        await update.message.reply_text(f"Configuration error: {e}")
        return

    header = f"*Context* (built {updated.strftime('%H:%M')})" if updated else "*Context*"
    await send_markdown(update.message, f"{header}\n\n```\n{text}\n```")


# ============== Dashboard ==============


async def _edit_status(status_message, text: str) -> None:
    try:
        await status_message.edit_text(text)
    except BadRequest as e:
        # Telegram rejects edits that do not change the text
        if "not modified" not in str(e).lower():
            logger.warning(f"Could not update progress message: {e}")


async def _build_with_progress(update: Update, config: Config, force: bool) -> DashboardSnapshot | None:
    """Run a refresh off the event loop, mirroring progress into one message."""
    broker = ProgressBroker()
    try:
        aggregator = build_aggregator(config, progress=broker)
    except ConfigError as e:
        await update.message.reply_text(f"Configuration error: {e}")
        return None

    status_message = await update.message.reply_text("Building dashboard...")
    last_text = ""
    with broker.subscribe() as events:
        build = asyncio.create_task(asyncio.to_thread(aggregator.build, force_update=force))
        while not build.done() or not events.empty():
            try:
                event = await asyncio.to_thread(events.get, timeout=0.5)
            except queue.Empty:
                continue
            if event.stage == Stage.LOG:
                continue
            text = progress_text(event)
            if text != last_text:
                await _edit_status(status_message, text)
                last_text = text
        snapshot = await build

    await _edit_status(status_message, "Dashboard ready." if not snapshot.error else "Dashboard ready, with problems.")
    return snapshot


async def _send_dashboard(update: Update, context: ContextTypes.DEFAULT_TYPE, force: bool):
    config = _config(context)
    snapshot = await _build_with_progress(update, config, force)
    if snapshot is None:
        return
    await send_markdown(
        update.message,
        format_snapshot(snapshot),
        reply_markup=suggestion_keyboard(snapshot),
    )


async def dashboard_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /dashboard command."""
    await _send_dashboard(update, context, force=False)


async def refresh_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /refresh command - regenerate every suggestion."""
    await _send_dashboard(update, context, force=True)


# ============== Callbacks ==============


async def accept_callback_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Apply the tapped suggestion to its Todoist task."""
    query = update.callback_query
    allowed = context.bot_data.get("allowed_users") or []
    if allowed and (update.effective_user is None or update.effective_user.id not in allowed):
        await query.answer("Unauthorized.", show_alert=True)
        return

    parsed = parse_accept_data(query.data or "")
    if parsed is None:
        await query.answer("Unknown action.")
        return
    task_id, index = parsed

    config = _config(context)
    suggestion_set = get_cache(config).get(task_id)
    if suggestion_set is None or index >= len(suggestion_set.suggestions):
        await query.answer("These suggestions are gone. Run /dashboard again.", show_alert=True)
        return

    title = suggestion_set.suggestions[index].new_title
    try:
        await asyncio.to_thread(accept_suggestion, config, task_id, title)
    except (ConfigError, TaskSourceError) as e:
        logger.error(f"Failed to apply suggestion to task {task_id}: {e}")
        await query.answer(f"Failed: {e}", show_alert=True)
        return

    await query.answer("Renamed!")
    await query.message.reply_text(f"✓ Renamed to: {title}")
