"""Calendar repository interface."""

from datetime import date
from typing import Protocol

from timecraft.core.calendar import CalendarEvent


class CalendarRepository(Protocol):
    """Interface for fetching calendar events from any backend.

    Implementations raise CalendarError (AuthenticationError for rejected
    credentials).
    """

    def fetch_events(self, target_date: date) -> list[CalendarEvent]:
        """Fetch events for a specific date."""
        ...

    def fetch_range(self, start_date: date, days: int) -> list[CalendarEvent]:
        """Fetch events for `days` days starting at `start_date`."""
        ...
