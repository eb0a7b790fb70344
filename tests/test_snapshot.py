"""Tests for snapshot assembly and text formatting."""

from datetime import date, datetime, timedelta

import pytest

from timecraft.core.calendar import CalendarEvent, TimeSlot
from timecraft.core.snapshot import (
    DashboardSnapshot,
    build_context,
    format_snapshot,
    format_task_line,
)
from timecraft.core.suggestions import Suggestion, SuggestionSet
from timecraft.core.tasks import Task


@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def now(today):
    return datetime(2025, 1, 15, 8, 0)


@pytest.fixture
def suggestion_set():
    return SuggestionSet(
        task_id="1",
        suggestions=tuple(
            Suggestion(new_title=f"Draft Q1 report section {i}", reason="", estimated_duration_minutes=45)
            for i in range(1, 6)
        ),
    )


@pytest.fixture
def snapshot(now, today, suggestion_set):
    return DashboardSnapshot(
        timestamp=now,
        free_time_slots=[
            TimeSlot(start=datetime(2025, 1, 15, 9), end=datetime(2025, 1, 15, 10)),
            TimeSlot(start=datetime(2025, 1, 15, 11), end=datetime(2025, 1, 15, 17)),
        ],
        overdue_tasks=[Task(id="1", content="report", due_date=today - timedelta(days=2))],
        due_today_tasks=[Task(id="2", content="Call plumber", due_date=today)],
        events=[TimeSlot(start=datetime(2025, 1, 15, 10), end=datetime(2025, 1, 15, 11), label="Meeting")],
        task_suggestions={"1": suggestion_set},
        loaded_task_count=2,
    )


class TestDashboardSnapshot:
    def test_total_free_hours(self, snapshot):
        assert snapshot.total_free_hours == 7.0

    def test_error_joins_messages(self, now):
        snapshot = DashboardSnapshot(timestamp=now, errors=["Calendar down", "Todoist down"])
        assert snapshot.error == "Calendar down; Todoist down"

    def test_no_error(self, snapshot):
        assert snapshot.error is None

    def test_failed(self, now):
        snapshot = DashboardSnapshot.failed(now, "boom")
        assert snapshot.error == "boom"
        assert snapshot.free_time_slots == []
        assert snapshot.total_free_hours == 0

    def test_to_dict(self, snapshot):
        data = snapshot.to_dict()

        assert data["timestamp"] == "2025-01-15T08:00:00"
        assert data["total_free_hours"] == 7.0
        assert [t["id"] for t in data["overdue_tasks"]] == ["1"]
        assert data["task_suggestions"]["1"]["task_id"] == "1"
        assert data["last_context_update"] is None
        assert data["error"] is None

    def test_target_date_defaults_to_timestamp_day(self, snapshot):
        assert snapshot.as_of == date(2025, 1, 15)
        assert snapshot.to_dict()["target_date"] == "2025-01-15"

    def test_failed_keeps_target_date(self, now):
        snapshot = DashboardSnapshot.failed(now, "boom", date(2025, 1, 18))
        assert snapshot.to_dict()["target_date"] == "2025-01-18"


class TestBuildContext:
    def test_lists_tasks_and_events(self, today):
        tasks = [Task(id="1", content="report", due_date=None), Task(id="2", content="budget", due_date=today)]
        events = [
            CalendarEvent(title="Review", start=datetime(2025, 1, 16, 14), end=datetime(2025, 1, 16, 15)),
            CalendarEvent(title="Standup", start=datetime(2025, 1, 15, 9), end=datetime(2025, 1, 15, 9, 15)),
        ]

        context = build_context(tasks, events)

        assert context.splitlines() == [
            "Tasks:",
            "- report",
            "- budget",
            "",
            "Calendar:",
            "- Wed 15.01. 09:00-09:15 Standup",
            "- Thu 16.01. 14:00-15:00 Review",
        ]

    def test_empty(self):
        assert build_context([], []) == "Tasks:\n- (none)\n\nCalendar:\n- (none)"


class TestFormatTaskLine:
    def test_overdue_with_suggestion(self, today, suggestion_set):
        task = Task(id="1", content="report", due_date=today - timedelta(days=2))
        line = format_task_line(task, today, suggestion_set)
        assert line == "- report (OVERDUE by 2d)\n  -> Draft Q1 report section 1 (~45 min)"

    def test_due_today(self, today):
        task = Task(id="2", content="Call plumber", due_date=today)
        assert format_task_line(task, today) == "- Call plumber (due TODAY)"


class TestFormatSnapshot:
    def test_sections(self, snapshot):
        text = format_snapshot(snapshot)

        assert text.startswith("## Dashboard for Wednesday, January 15")
        assert "**Free time:** 7.0 hours" in text
        assert "- 09:00-10:00 (60 min)" in text
        assert "- 10:00-11:00 (60 min) Meeting" in text
        assert "### Overdue\n- report (OVERDUE by 2d)" in text
        assert "### Due Today\n- Call plumber (due TODAY)" in text
        assert "Warning" not in text

    def test_warning_and_empty_sections(self, now):
        text = format_snapshot(DashboardSnapshot.failed(now, "Tasks unavailable"))

        assert "**Warning:** Tasks unavailable" in text
        assert "No free slots today." in text
        assert "### Overdue\nNone" in text

    def test_target_date_drives_header_and_lateness(self, snapshot):
        snapshot.target_date = date(2025, 1, 18)

        text = format_snapshot(snapshot)

        assert text.startswith("## Dashboard for Saturday, January 18")
        assert "- report (OVERDUE by 5d)" in text
        assert "- Call plumber (OVERDUE by 3d)" in text
