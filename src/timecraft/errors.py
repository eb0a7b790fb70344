"""Exceptions shared by the core, ports and adapters."""


class TimecraftError(Exception):
    """Base class for TimeCraft errors."""

    pass


class ConfigError(TimecraftError):
    """Raised when configuration is missing or invalid."""

    pass


class CalendarError(TimecraftError):
    """Raised when the calendar source cannot deliver events."""

    pass


class AuthenticationError(CalendarError):
    """Raised when the calendar source rejects our credentials."""

    pass


class TaskSourceError(TimecraftError):
    """Raised when the task provider cannot be read or updated."""

    pass


class SuggestionError(TimecraftError):
    """Raised when a suggestion set cannot be generated for a task."""

    pass
