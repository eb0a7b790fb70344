"""TimeCraft Telegram Bot."""

import asyncio
import logging

from telegram import Update, Bot
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    MessageHandler,
    filters,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Config, load_config
from .core.snapshot import format_snapshot
from .errors import ConfigError
from .telegram_format import send_markdown, suggestion_keyboard
from .telegram_handlers import (
    start_handler,
    help_handler,
    context_handler,
    dashboard_handler,
    refresh_handler,
    accept_callback_handler,
)
from .workflows import refresh_dashboard

logger = logging.getLogger(__name__)


class AuthFilter(filters.BaseFilter):
    """Filter to only allow authorized users."""

    def __init__(self, allowed_users: list[int]):
        super().__init__()
        self.allowed_users = allowed_users

    def check_update(self, update: Update) -> bool:
        if not self.allowed_users:
            return True  # No restriction if no users configured
        user = update.effective_user
        if user is None:
            return False
        return user.id in self.allowed_users


def create_application(config: Config | None = None) -> Application:
    """Create and configure the Telegram bot application."""
    if config is None:
        config = load_config()

    if not config.telegram_bot_token:
        raise ValueError(
            "TELEGRAM_BOT_TOKEN not configured. "
            "Get a token from @BotFather on Telegram and add it to timecraft.conf"
        )

    app = Application.builder().token(config.telegram_bot_token).build()
    app.bot_data["config"] = config
    app.bot_data["allowed_users"] = config.telegram_allowed_users

    auth_filter = AuthFilter(config.telegram_allowed_users)

    app.add_handler(CommandHandler("start", start_handler, filters=auth_filter))
    app.add_handler(CommandHandler("help", help_handler, filters=auth_filter))
    app.add_handler(CommandHandler("dashboard", dashboard_handler, filters=auth_filter))
    app.add_handler(CommandHandler("refresh", refresh_handler, filters=auth_filter))
    app.add_handler(CommandHandler("context", context_handler, filters=auth_filter))
    app.add_handler(CallbackQueryHandler(accept_callback_handler, pattern=r"^accept:"))

    async def unauthorized_handler(update: Update, context):
        user = update.effective_user
        logger.warning(f"Unauthorized access attempt from user {user.id} ({user.username})")
        await update.message.reply_text(
            "Unauthorized. This bot is private.\n"
            "If you're the owner, add your Telegram user ID to TELEGRAM_ALLOWED_USERS in timecraft.conf"
        )

    if config.telegram_allowed_users:
        app.add_handler(
            MessageHandler(~auth_filter & filters.ALL, unauthorized_handler)
        )

    return app


def setup_scheduler(app: Application, config: Config | None = None) -> AsyncIOScheduler:
    """Schedule the daily dashboard push."""
    if config is None:
        config = load_config()

    scheduler = AsyncIOScheduler(timezone=config.timezone)

    if config.telegram_refresh_time and config.telegram_allowed_users:
        try:
            hour, minute = map(int, config.telegram_refresh_time.split(":"))
            scheduler.add_job(
                send_scheduled_dashboard,
                CronTrigger(hour=hour, minute=minute),
                args=[app.bot, config.telegram_allowed_users, config],
                id="daily_dashboard",
            )
            logger.info(f"Scheduled daily dashboard at {hour:02d}:{minute:02d}")
        except ValueError:
            logger.warning(f"Invalid refresh time format: {config.telegram_refresh_time}")

    return scheduler


async def send_scheduled_dashboard(bot: Bot, user_ids: list[int], config: Config):
    """Build the dashboard once and send it to all authorized users."""
    logger.info("Sending scheduled dashboard")

    try:
        snapshot = await asyncio.to_thread(refresh_dashboard, config)
    except ConfigError as e:
        logger.error(f"Scheduled dashboard skipped: {e}")
        return

    text = format_snapshot(snapshot)
    keyboard = suggestion_keyboard(snapshot)
    for user_id in user_ids:
        try:
            await send_markdown(bot, text, chat_id=user_id, reply_markup=keyboard)
        except Exception as e:
            logger.error(f"Failed to send dashboard to user {user_id}: {e}")


def run_bot():
    """Run the Telegram bot."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    config = load_config()
    config.validate()
    app = create_application(config)
    scheduler = setup_scheduler(app, config)

    async def post_init(application: Application) -> None:
        """Start scheduler after event loop is running."""
        scheduler.start()
        logger.info("Scheduler started")

    app.post_init = post_init

    if config.telegram_allowed_users:
        logger.info(f"Bot authorized for users: {config.telegram_allowed_users}")
    else:
        logger.warning("No TELEGRAM_ALLOWED_USERS configured - bot is open to anyone!")

    logger.info("Starting TimeCraft Telegram bot...")

    app.run_polling(allowed_updates=Update.ALL_TYPES)
