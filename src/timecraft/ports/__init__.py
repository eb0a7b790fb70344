"""Ports - interfaces/protocols for external dependencies."""

from .calendar_repo import CalendarRepository
from .task_repo import TaskRepository
from .suggestion_service import SuggestionService
from .kv_store import KeyValueStore
from .progress_sink import ProgressSink

__all__ = [
    "CalendarRepository",
    "TaskRepository",
    "SuggestionService",
    "KeyValueStore",
    "ProgressSink",
]
