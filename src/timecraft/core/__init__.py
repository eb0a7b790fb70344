"""Functional core - pure business logic with no I/O."""

from .calendar import (
    CalendarEvent,
    TimeSlot,
    compute_duration,
    compute_free_slots,
    work_window,
)
from .tasks import Task, Triage, classify, relevant_tasks
from .suggestions import Reconciliation, Suggestion, SuggestionSet, reconcile
from .snapshot import DashboardSnapshot, build_context, format_snapshot

__all__ = [
    # Calendar
    "CalendarEvent",
    "TimeSlot",
    "compute_duration",
    "compute_free_slots",
    "work_window",
    # Tasks
    "Task",
    "Triage",
    "classify",
    "relevant_tasks",
    # Suggestions
    "Reconciliation",
    "Suggestion",
    "SuggestionSet",
    "reconcile",
    # Snapshot
    "DashboardSnapshot",
    "build_context",
    "format_snapshot",
]
