"""Pure calendar domain logic - no I/O dependencies."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo

FREE_LABEL = "Free"


def compute_duration(start: datetime, end: datetime) -> int:
    """Minutes from `start` to `end`, rounded half-up."""
    return math.floor((end - start).total_seconds() / 60 + 0.5)


@dataclass
class CalendarEvent:
    """A calendar event."""

    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    location: str = ""

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Event {self.title!r} ends before it starts")

    def format_time(self) -> str:
        """Format the event time for display."""
        if self.all_day:
            return "All day"
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    def duration_minutes(self) -> int:
        return compute_duration(self.start, self.end)


@dataclass
class TimeSlot:
    """A labelled interval of the day, free or busy."""

    start: datetime
    end: datetime
    label: str = FREE_LABEL
    duration_minutes: int = field(init=False)

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("TimeSlot end must not precede its start")
        self.duration_minutes = compute_duration(self.start, self.end)

    def format(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')} ({self.duration_minutes} min)"

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "label": self.label,
            "duration_minutes": self.duration_minutes,
        }


def work_window(
    target_date: date,
    start_hour: int,
    end_hour: int,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """Working-hours boundaries for a day."""
    return (
        datetime.combine(target_date, time(start_hour, 0), tzinfo=tz),
        datetime.combine(target_date, time(end_hour, 0), tzinfo=tz),
    )


def compute_free_slots(
    busy_events: list[CalendarEvent],
    work_start: datetime,
    work_end: datetime,
) -> list[TimeSlot]:
    """
    Find free time slots between busy events inside the working window.

    Pure function - no I/O.

    Events are sorted by start only. Overlapping or nested events need no
    merging because the cursor never moves backward.

    Args:
        busy_events: Events blocking time (should be for a single day)
        work_start: Start of the working window
        work_end: End of the working window

    Returns:
        Free TimeSlots in chronological order, never zero-length
    """
    if work_start >= work_end:
        raise ValueError(f"Work window must start before it ends: {work_start} >= {work_end}")

    overlapping = sorted(
        [e for e in busy_events if e.start < work_end and e.end > work_start],
        key=lambda e: e.start,
    )

    free_slots = []
    cursor = work_start

    for event in overlapping:
        # Gap before this event?
        if cursor < event.start:
            free_slots.append(TimeSlot(start=cursor, end=event.start))
        cursor = max(cursor, event.end)

    # Gap after last event?
    if cursor < work_end:
        free_slots.append(TimeSlot(start=cursor, end=work_end))

    return free_slots


def busy_events(events: list[CalendarEvent], target_date: date) -> list[CalendarEvent]:
    """Timed events starting on `target_date`. All-day events do not block time."""
    return [e for e in events if not e.all_day and e.start.date() == target_date]


def events_to_slots(events: list[CalendarEvent]) -> list[TimeSlot]:
    """Display slots for events, labelled with the event title, sorted by start."""
    return [
        TimeSlot(start=e.start, end=e.end, label=e.title)
        for e in sorted(events, key=lambda e: e.start)
    ]


def total_free_hours(slots: list[TimeSlot]) -> float:
    """Sum of slot durations in hours."""
    return sum(slot.duration_minutes for slot in slots) / 60
