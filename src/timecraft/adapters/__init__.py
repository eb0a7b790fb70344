"""Adapters - I/O implementations of ports."""

from .graph_calendar import GraphCalendarAdapter
from .todoist_api import TodoistAdapter
from .openai_suggestions import OpenAISuggestionService
from .json_store import JsonFileStore

__all__ = [
    "GraphCalendarAdapter",
    "TodoistAdapter",
    "OpenAISuggestionService",
    "JsonFileStore",
]
