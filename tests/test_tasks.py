"""Tests for core task logic."""

from datetime import date, datetime, timedelta, timezone

import pytest

from timecraft.core.tasks import (
    Task,
    classify,
    days_overdue,
    relevant_tasks,
)


# Fixtures
@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def sample_tasks(today):
    """Sample tasks covering various scenarios."""
    return [
        Task(id="1", content="Write report", due_date=today - timedelta(days=1)),
        Task(id="2", content="Call plumber", due_date=today),
        Task(id="3", content="Book flights", due_date=today + timedelta(days=1)),
        Task(id="4", content="Someday idea", due_date=None),
        Task(id="5", content="Pay invoice", due_date=today - timedelta(days=5)),
        Task(id="6", content="Water plants", due_date=today),
    ]


class TestTaskFromApi:
    def test_parses_due_date(self):
        task = Task.from_api({
            "id": 8123,
            "content": "Renew passport",
            "priority": 4,
            "project_id": 2203,
            "due": {"date": "2025-01-14", "string": "yesterday"},
        })

        assert task.id == "8123"
        assert task.content == "Renew passport"
        assert task.due_date == date(2025, 1, 14)
        assert task.priority == 4
        assert task.project_id == "2203"
        assert task.optimized is False

    def test_parses_due_datetime(self):
        task = Task.from_api({
            "id": "1",
            "content": "Dentist",
            "due": {"date": "2025-01-15", "datetime": "2025-01-15T14:30:00Z"},
        })

        assert task.due_date == date(2025, 1, 15)
        assert task.due_datetime == datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)

    def test_no_due(self):
        task = Task.from_api({"id": "1", "content": "Someday", "due": None})
        assert task.due_date is None
        assert task.due_datetime is None

    def test_missing_id_raises(self):
        with pytest.raises(KeyError):
            Task.from_api({"content": "No id"})

    def test_to_dict(self, today):
        task = Task(id="1", content="Write report", due_date=today, priority=2)
        assert task.to_dict() == {
            "id": "1",
            "content": "Write report",
            "due_date": "2025-01-15",
            "priority": 2,
            "project_id": "",
            "optimized": False,
        }


class TestClassify:
    def test_yesterday_is_overdue(self, today):
        task = Task(id="1", content="a", due_date=today - timedelta(days=1))
        triage = classify([task], today)
        assert triage.overdue == [task]
        assert triage.due_today == []

    def test_today_is_due_today(self, today):
        task = Task(id="1", content="a", due_date=today)
        triage = classify([task], today)
        assert triage.overdue == []
        assert triage.due_today == [task]

    def test_tomorrow_is_neither(self, today):
        task = Task(id="1", content="a", due_date=today + timedelta(days=1))
        assert classify([task], today) == ([], [])

    def test_undated_is_neither(self, today):
        task = Task(id="1", content="a", due_date=None)
        assert classify([task], today) == ([], [])

    def test_preserves_input_order(self, sample_tasks, today):
        triage = classify(sample_tasks, today)
        assert [t.id for t in triage.overdue] == ["1", "5"]
        assert [t.id for t in triage.due_today] == ["2", "6"]

    def test_ignores_time_of_day(self, today):
        task = Task(id="1", content="a", due_date=today)
        late_evening = datetime.combine(today, datetime.max.time())
        assert classify([task], late_evening).due_today == [task]

    def test_empty(self, today):
        assert classify([], today) == ([], [])


class TestRelevantTasks:
    def test_overdue_first(self, sample_tasks, today):
        relevant = relevant_tasks(classify(sample_tasks, today))
        assert [t.id for t in relevant] == ["1", "5", "2", "6"]


class TestDaysOverdue:
    def test_counts_days(self, today):
        task = Task(id="1", content="a", due_date=today - timedelta(days=3))
        assert days_overdue(task, today) == 3

    def test_not_overdue(self, today):
        assert days_overdue(Task(id="1", content="a", due_date=today), today) == 0
        assert days_overdue(Task(id="2", content="b", due_date=today + timedelta(days=2)), today) == 0

    def test_undated(self, today):
        assert days_overdue(Task(id="1", content="a", due_date=None), today) == 0
