"""Dashboard snapshot assembly and formatting - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime

from .calendar import CalendarEvent, TimeSlot, total_free_hours
from .suggestions import SuggestionSet
from .tasks import Task, days_overdue


@dataclass
class DashboardSnapshot:
    """Everything the dashboard shows for one day."""

    timestamp: datetime
    target_date: date | None = None
    free_time_slots: list[TimeSlot] = field(default_factory=list)
    overdue_tasks: list[Task] = field(default_factory=list)
    due_today_tasks: list[Task] = field(default_factory=list)
    events: list[TimeSlot] = field(default_factory=list)
    task_suggestions: dict[str, SuggestionSet] = field(default_factory=dict)
    last_context_update: datetime | None = None
    loaded_task_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total_free_hours(self) -> float:
        return total_free_hours(self.free_time_slots)

    @property
    def error(self) -> str | None:
        """All failure messages joined, or None for a clean snapshot."""
        return "; ".join(self.errors) if self.errors else None

    @classmethod
    def failed(
        cls, timestamp: datetime, message: str, target_date: date | None = None
    ) -> "DashboardSnapshot":
        """A snapshot-shaped error object."""
        return cls(timestamp=timestamp, target_date=target_date, errors=[message])

    @property
    def as_of(self) -> date:
        """The day this snapshot describes."""
        return self.target_date or self.timestamp.date()

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "target_date": self.as_of.isoformat(),
            "free_time_slots": [s.to_dict() for s in self.free_time_slots],
            "total_free_hours": self.total_free_hours,
            "overdue_tasks": [t.to_dict() for t in self.overdue_tasks],
            "due_today_tasks": [t.to_dict() for t in self.due_today_tasks],
            "events": [e.to_dict() for e in self.events],
            "task_suggestions": {
                task_id: s.to_dict() for task_id, s in self.task_suggestions.items()
            },
            "last_context_update": (
                self.last_context_update.isoformat() if self.last_context_update else None
            ),
            "loaded_task_count": self.loaded_task_count,
            "error": self.error,
        }


def build_context(tasks: list[Task], events: list[CalendarEvent]) -> str:
    """
    Serialize all known tasks and upcoming events as background text.

    Pure function - no I/O.
    """
    lines = ["Tasks:"]
    lines.extend(f"- {t.content}" for t in tasks)
    if not tasks:
        lines.append("- (none)")
    lines.append("")
    lines.append("Calendar:")
    for e in sorted(events, key=lambda e: e.start):
        lines.append(f"- {e.start.strftime('%a %d.%m.')} {e.format_time()} {e.title}")
    if not events:
        lines.append("- (none)")
    return "\n".join(lines)


def format_task_line(task: Task, as_of: date, suggestion: SuggestionSet | None = None) -> str:
    """Format a single task for the text dashboard."""
    late = days_overdue(task, as_of)
    urgency = f"OVERDUE by {late}d" if late else "due TODAY"
    line = f"- {task.content} ({urgency})"
    if suggestion:
        best = suggestion.suggestions[0]
        line += f"\n  -> {best.new_title} (~{best.estimated_duration_minutes} min)"
    return line


def format_snapshot(snapshot: DashboardSnapshot) -> str:
    """Render the snapshot as markdown text."""
    as_of = snapshot.as_of
    sections = [f"## Dashboard for {as_of.strftime('%A, %B %d')}"]

    if snapshot.error:
        sections.append(f"**Warning:** {snapshot.error}")

    sections.append(f"**Free time:** {snapshot.total_free_hours:.1f} hours")
    sections.append(
        "### Free Slots\n"
        + ("\n".join(f"- {s.format()}" for s in snapshot.free_time_slots) or "No free slots today.")
    )
    sections.append(
        "### Events\n"
        + ("\n".join(f"- {e.format()} {e.label}" for e in snapshot.events) or "No events today.")
    )

    for title, tasks in (
        ("Overdue", snapshot.overdue_tasks),
        ("Due Today", snapshot.due_today_tasks),
    ):
        body = "\n".join(
            format_task_line(t, as_of, snapshot.task_suggestions.get(t.id)) for t in tasks
        )
        sections.append(f"### {title}\n{body or 'None'}")

    return "\n\n".join(sections)
