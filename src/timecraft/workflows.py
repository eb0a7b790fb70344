"""Shared workflow layer between CLI, scheduler and Telegram.

Builds adapters from config and wraps the aggregator operations the
surfaces need.
"""

import logging
import threading
from datetime import date, datetime

from .adapters.graph_calendar import GraphCalendarAdapter
from .adapters.json_store import JsonFileStore
from .adapters.openai_suggestions import OpenAISuggestionService
from .adapters.todoist_api import TodoistAdapter
from .config import Config
from .core.snapshot import DashboardSnapshot
from .dashboard import DashboardAggregator
from .ports import ProgressSink
from .suggestion_cache import SuggestionCache

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "todoist_api_token",
    "microsoft_tenant_id",
    "microsoft_client_id",
    "microsoft_client_secret",
    "ms_user_email",
    "openai_api_key",
)


def get_cache(config: Config) -> SuggestionCache:
    """Suggestion cache backed by JSON files in the data directory."""
    return SuggestionCache(
        store=JsonFileStore(config.data_path / "suggestions.json"),
        optimized_store=JsonFileStore(config.data_path / "optimized.json"),
    )


def get_task_source(config: Config) -> TodoistAdapter:
    config.require("todoist_api_token")
    return TodoistAdapter(config.todoist_api_token)


def build_aggregator(config: Config, progress: ProgressSink | None = None) -> DashboardAggregator:
    """Validate config and wire the production adapters. Raises ConfigError."""
    config.validate()
    config.require(*REQUIRED_KEYS)

    calendar = GraphCalendarAdapter(
        tenant_id=config.microsoft_tenant_id,
        client_id=config.microsoft_client_id,
        client_secret=config.microsoft_client_secret,
        user_email=config.ms_user_email,
        timezone=config.timezone,
    )
    suggester = OpenAISuggestionService(
        api_key=config.openai_api_key,
        model=config.openai_model,
        system_prompt=config.openai_system_prompt,
        task_prompt=config.openai_task_prompt,
    )
    return DashboardAggregator(
        calendar=calendar,
        tasks=get_task_source(config),
        suggester=suggester,
        cache=get_cache(config),
        config=config,
        progress=progress,
    )


def refresh_dashboard(
    config: Config,
    target_date: date | None = None,
    force_update: bool = False,
    progress: ProgressSink | None = None,
    cancel: threading.Event | None = None,
) -> DashboardSnapshot:
    """Run one dashboard refresh with a fresh aggregator."""
    aggregator = build_aggregator(config, progress=progress)
    return aggregator.build(target_date=target_date, force_update=force_update, cancel=cancel)


def accept_suggestion(config: Config, task_id: str, new_title: str) -> None:
    """Rename the task at Todoist, then retire its suggestions.

    The task is only marked optimized once the rename succeeded.
    Raises TaskSourceError.
    """
    get_task_source(config).update_task_title(task_id, new_title)
    get_cache(config).mark_optimized(task_id)
    logger.info(f"Applied suggestion to task {task_id}")


def current_context(config: Config) -> tuple[str, datetime | None]:
    """Freshly built context string and the time it was built."""
    return build_aggregator(config).load_context()
