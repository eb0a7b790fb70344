"""Persistent suggestion cache gating LLM calls."""

import logging
import threading
from datetime import datetime, timezone

from .core.suggestions import Reconciliation, SuggestionSet, reconcile
from .core.tasks import Task
from .ports.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class SuggestionCache:
    """
    Owner of every SuggestionSet's lifetime.

    Entries are only replaced by an explicit upsert after a force clear, and
    only dropped when their task leaves the relevant set or gets optimized.
    Store failures are logged and treated as an empty cache or a lost write.
    """

    def __init__(self, store: KeyValueStore, optimized_store: KeyValueStore | None = None):
        self.store = store
        self.optimized_store = optimized_store
        self._lock = threading.Lock()

    # ============== Store access ==============

    def _load(self) -> dict[str, SuggestionSet]:
        try:
            raw = self.store.load()
        except (OSError, ValueError) as e:
            logger.warning(f"Suggestion cache unreadable, treating as empty: {e}")
            return {}

        entries = {}
        for task_id, data in raw.items():
            try:
                entries[task_id] = SuggestionSet.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed cache entry for task {task_id}: {e}")
        return entries

    def _save(self, entries: dict[str, SuggestionSet]) -> None:
        try:
            self.store.save({task_id: s.to_dict() for task_id, s in entries.items()})
        except (OSError, ValueError) as e:
            logger.warning(f"Suggestion cache write failed: {e}")

    def _optimized_ids(self) -> set[str]:
        if self.optimized_store is None:
            return set()
        try:
            return set(self.optimized_store.load())
        except (OSError, ValueError) as e:
            logger.warning(f"Optimized task list unreadable: {e}")
            return set()

    # ============== Public API ==============

    def get_all(self) -> dict[str, SuggestionSet]:
        """All cached suggestion sets by task id."""
        with self._lock:
            return self._load()

    def get(self, task_id: str) -> SuggestionSet | None:
        return self.get_all().get(task_id)

    def reconcile(self, relevant: list[Task]) -> Reconciliation:
        """
        Compare the cache with the relevant tasks.

        Returns the tasks still needing suggestions and the ids pruned from
        the cache because their task is no longer relevant.
        """
        with self._lock:
            entries = self._load()
            result = reconcile(entries.keys(), relevant, self._optimized_ids())
            if result.orphaned:
                for task_id in result.orphaned:
                    del entries[task_id]
                self._save(entries)
                logger.info(f"Pruned {len(result.orphaned)} stale suggestion set(s)")
        return result

    def upsert(self, task_id: str, suggestion_set: SuggestionSet) -> None:
        """Write one entry and persist immediately."""
        with self._lock:
            entries = self._load()
            entries[task_id] = suggestion_set
            self._save(entries)

    def _delete(self, task_id: str) -> None:
        try:
            self.store.delete(task_id)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not remove suggestions for task {task_id}: {e}")

    def remove(self, task_id: str) -> None:
        with self._lock:
            self._delete(task_id)

    def force_clear(self) -> None:
        """Empty the cache so every relevant task is treated as missing."""
        with self._lock:
            self._save({})
        logger.info("Suggestion cache cleared")

    def mark_optimized(self, task_id: str, when: datetime | None = None) -> None:
        """Record that a suggestion was applied; its set is no longer needed.

        Removal and recording happen under one lock acquisition.
        """
        when = when or datetime.now(timezone.utc)
        with self._lock:
            self._delete(task_id)
            if self.optimized_store is None:
                return
            try:
                optimized = self.optimized_store.load()
                optimized[task_id] = when.isoformat()
                self.optimized_store.save(optimized)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not record task {task_id} as optimized: {e}")

    def prune_optimized(self, live_ids: set[str]) -> list[str]:
        """Forget optimized ids whose task no longer exists. Returns the dropped ids."""
        if self.optimized_store is None:
            return []
        with self._lock:
            try:
                optimized = self.optimized_store.load()
                gone = [task_id for task_id in optimized if task_id not in live_ids]
                if gone:
                    for task_id in gone:
                        del optimized[task_id]
                    self.optimized_store.save(optimized)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not prune optimized task list: {e}")
                return []
        if gone:
            logger.info(f"Forgot {len(gone)} optimized task(s) no longer in Todoist")
        return gone

    def is_optimized(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._optimized_ids()

    def apply_optimized_flags(self, tasks: list[Task]) -> list[Task]:
        """Set Task.optimized from the persisted optimized ids, in place."""
        with self._lock:
            optimized = self._optimized_ids()
        for task in tasks:
            if task.id in optimized:
                task.optimized = True
        return tasks
