"""Dashboard aggregator - runs one refresh across calendar, tasks and suggestions."""

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import Config
from .core.calendar import (
    CalendarEvent,
    busy_events,
    compute_free_slots,
    events_to_slots,
    work_window,
)
from .core.snapshot import DashboardSnapshot, build_context
from .core.tasks import Task, classify, relevant_tasks
from .errors import CalendarError, ConfigError, SuggestionError, TaskSourceError
from .ports import CalendarRepository, ProgressSink, SuggestionService, TaskRepository
from .progress import ProgressEvent, Stage
from .suggestion_cache import SuggestionCache

logger = logging.getLogger(__name__)


class DashboardAggregator:
    """
    Builds DashboardSnapshots.

    A refresh walks init -> loading_calendar -> loading_tasks ->
    reconciling_suggestions -> optimizing -> complete, publishing a
    ProgressEvent at each step. Collaborator failures are recorded in the
    snapshot and the refresh carries on; build() never raises.
    """

    def __init__(
        self,
        calendar: CalendarRepository,
        tasks: TaskRepository,
        suggester: SuggestionService,
        cache: SuggestionCache,
        config: Config,
        progress: ProgressSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        config.validate()
        try:
            self.tz = ZoneInfo(config.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(f"Unknown timezone: {config.timezone!r}")

        self.calendar = calendar
        self.tasks = tasks
        self.suggester = suggester
        self.cache = cache
        self.config = config
        self.progress = progress
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.state = Stage.INIT
        self._context = ""
        self._context_updated: datetime | None = None

    def _emit(self, stage: Stage, message: str, **data) -> None:
        """Move to `stage` and notify the progress sink, best effort."""
        self.state = stage
        logger.debug(f"[{stage.value}] {message}")
        if self.progress is None:
            return
        try:
            self.progress.publish(ProgressEvent(stage=stage, message=message, data=data))
        except Exception as e:
            logger.warning(f"Progress sink rejected event: {e}")

    def current_context(self) -> tuple[str, datetime | None]:
        """The context string handed to the suggestion generator and its age."""
        return self._context, self._context_updated

    def load_context(self, target_date: date | None = None) -> tuple[str, datetime | None]:
        """Rebuild the context string from the sources without touching suggestions."""
        now = self.clock()
        try:
            tasks = self.tasks.fetch_all()
        except TaskSourceError as e:
            logger.warning(f"Tasks unavailable for context: {e}")
            tasks = []
        self._refresh_context(tasks, None, target_date or now.date(), now, force=True)
        return self.current_context()

    def build(
        self,
        target_date: date | None = None,
        force_update: bool = False,
        cancel: threading.Event | None = None,
    ) -> DashboardSnapshot:
        """
        Run one refresh and return the snapshot.

        Args:
            target_date: Day to build the dashboard for (defaults to today)
            force_update: Drop all cached suggestions and regenerate them
            cancel: When set, no further suggestion request is started
        """
        now = self.clock()
        target = target_date or now.date()
        try:
            return self._build(now, target, force_update, cancel)
        except Exception as e:
            logger.exception("Dashboard refresh failed")
            message = f"Dashboard refresh failed: {e}"
            self._emit(Stage.ERROR, message)
            return DashboardSnapshot.failed(now, message, target)

    def _build(
        self,
        now: datetime,
        target: date,
        force_update: bool,
        cancel: threading.Event | None,
    ) -> DashboardSnapshot:
        snapshot = DashboardSnapshot(timestamp=now, target_date=target)
        self._emit(Stage.INIT, f"Building dashboard for {target.isoformat()}")

        # Calendar
        self._emit(Stage.LOADING_CALENDAR, "Loading calendar...")
        events = self._load_events(target, snapshot)
        work_start, work_end = work_window(
            target, self.config.work_start_hour, self.config.work_end_hour, self.tz
        )
        snapshot.free_time_slots = compute_free_slots(
            busy_events(events, target), work_start, work_end
        )
        snapshot.events = events_to_slots(events)

        # Tasks
        self._emit(Stage.LOADING_TASKS, "Loading tasks...")
        all_tasks = self._load_tasks(snapshot)
        if all_tasks is not None:
            self.cache.prune_optimized({t.id for t in all_tasks})
        self.cache.apply_optimized_flags(all_tasks or [])
        triage = classify(all_tasks or [], target)
        snapshot.overdue_tasks = triage.overdue
        snapshot.due_today_tasks = triage.due_today
        snapshot.loaded_task_count = len(all_tasks or [])
        if all_tasks is not None:
            self._refresh_context(all_tasks, events, target, now)
        snapshot.last_context_update = self._context_updated
        self._emit(
            Stage.LOADING_TASKS,
            f"Loaded {snapshot.loaded_task_count} tasks "
            f"({len(triage.overdue)} overdue, {len(triage.due_today)} due today)",
            partial=True,
            snapshot=snapshot.to_dict(),
        )

        if all_tasks is None:
            # Reconciling against an empty list would prune every cached set.
            logger.warning("Skipping suggestions: task list unavailable")
            self._emit(Stage.COMPLETE, "Dashboard ready (without tasks)", snapshot=snapshot.to_dict())
            return snapshot

        # Suggestions
        self._emit(Stage.RECONCILING_SUGGESTIONS, "Checking cached suggestions...")
        if force_update:
            self.cache.force_clear()
        relevant = relevant_tasks(triage)
        result = self.cache.reconcile(relevant)
        logger.info(
            f"{len(result.missing)} task(s) need suggestions, {len(result.orphaned)} pruned"
        )

        self._emit(
            Stage.OPTIMIZING,
            f"{len(result.missing)} task(s) to optimize",
            total=len(result.missing),
            processed=0,
        )
        self._optimize(result.missing, cancel)

        relevant_ids = {t.id for t in relevant}
        snapshot.task_suggestions = {
            task_id: s for task_id, s in self.cache.get_all().items() if task_id in relevant_ids
        }

        self._emit(Stage.COMPLETE, "Dashboard ready", snapshot=snapshot.to_dict())
        return snapshot

    def _load_events(self, target: date, snapshot: DashboardSnapshot) -> list[CalendarEvent]:
        try:
            return self.calendar.fetch_events(target)
        except CalendarError as e:
            message = f"Calendar unavailable: {e}"
            logger.warning(message)
            snapshot.errors.append(message)
            self._emit(Stage.ERROR, message, source="calendar")
            return []

    def _load_tasks(self, snapshot: DashboardSnapshot) -> list[Task] | None:
        try:
            return self.tasks.fetch_all()
        except TaskSourceError as e:
            message = f"Tasks unavailable: {e}"
            logger.warning(message)
            snapshot.errors.append(message)
            self._emit(Stage.ERROR, message, source="tasks")
            return None

    def _refresh_context(
        self,
        tasks: list[Task],
        events: list[CalendarEvent] | None,
        target: date,
        now: datetime,
        force: bool = False,
    ) -> None:
        """Rebuild the context string when forced, empty or stale.

        `events` are the target day's events, or None to fetch them.
        """
        max_age = timedelta(seconds=self.config.context_refresh_seconds)
        fresh = self._context_updated is not None and now - self._context_updated <= max_age
        if self._context and fresh and not force:
            return

        upcoming = events or []
        if events is None or self.config.days_to_include > 1:
            try:
                upcoming = self.calendar.fetch_range(target, self.config.days_to_include)
            except CalendarError as e:
                logger.warning(f"Lookahead calendar unavailable: {e}")

        self._context = build_context(tasks, upcoming)
        self._context_updated = now
        logger.info("Task context updated")

    def _optimize(self, missing: list[Task], cancel: threading.Event | None) -> None:
        """Request suggestions one task at a time, caching each as it lands."""
        total = len(missing)
        for index, task in enumerate(missing, start=1):
            if cancel is not None and cancel.is_set():
                logger.info(f"Refresh cancelled, {total - index + 1} task(s) left for next time")
                self._emit(Stage.OPTIMIZING, "Cancelled", cancelled=True, processed=index - 1, total=total)
                return

            self._emit(
                Stage.OPTIMIZING,
                f"Optimizing {index}/{total}: {task.content}",
                current_task=task.content,
                processed=index - 1,
                total=total,
            )
            try:
                suggestion_set = self.suggester.generate(task, self._context)
            except SuggestionError as e:
                logger.warning(f"No suggestions for task {task.id} ({task.content!r}): {e}")
                continue

            self.cache.upsert(task.id, suggestion_set)
            self._emit(
                Stage.OPTIMIZING,
                f"Suggestions ready for {task.content}",
                task_id=task.id,
                suggestions=[s.to_dict() for s in suggestion_set.suggestions],
                processed=index,
                total=total,
            )
