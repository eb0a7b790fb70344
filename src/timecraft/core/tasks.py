"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import NamedTuple


@dataclass
class Task:
    """A Todoist task."""

    id: str
    content: str
    due_date: date | None
    priority: int = 1
    project_id: str = ""
    optimized: bool = False
    due_datetime: datetime | None = field(default=None, compare=False)

    @classmethod
    def from_api(cls, data: dict) -> "Task":
        """Create Task from a Todoist REST API response."""
        due = data.get("due") or {}
        due_date = None
        if due.get("date"):
            due_date = date.fromisoformat(due["date"].split("T")[0])
        due_datetime = None
        if due.get("datetime"):
            due_datetime = datetime.fromisoformat(due["datetime"].replace("Z", "+00:00"))
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            due_date=due_date,
            priority=data.get("priority", 1),
            project_id=str(data.get("project_id") or ""),
            due_datetime=due_datetime,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority,
            "project_id": self.project_id,
            "optimized": self.optimized,
        }


class Triage(NamedTuple):
    """Tasks needing attention on the reference date."""

    overdue: list[Task]
    due_today: list[Task]


def _as_date(value: date | datetime) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def classify(tasks: list[Task], reference_date: date | datetime) -> Triage:
    """
    Split tasks into overdue and due-today, comparing dates only.

    Tasks without a due date or due in the future land in neither bucket.
    Input order is kept within each bucket.
    Pure function - no I/O.
    """
    today = _as_date(reference_date)
    overdue = []
    due_today = []
    for task in tasks:
        if task.due_date is None:
            continue
        due = _as_date(task.due_date)
        if due < today:
            overdue.append(task)
        elif due == today:
            due_today.append(task)
    return Triage(overdue=overdue, due_today=due_today)


def relevant_tasks(triage: Triage) -> list[Task]:
    """Tasks suggestions are maintained for: overdue, then due today."""
    return [*triage.overdue, *triage.due_today]


def days_overdue(task: Task, as_of: date | datetime) -> int:
    """Whole days past the due date (0 when due today or later, or undated)."""
    if task.due_date is None:
        return 0
    return max((_as_date(as_of) - task.due_date).days, 0)
