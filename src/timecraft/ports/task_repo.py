"""Task repository interface."""

from typing import Protocol

from timecraft.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for reading and renaming tasks. Raises TaskSourceError."""

    def fetch_all(self) -> list[Task]:
        """Fetch all open tasks."""
        ...

    def update_task_title(self, task_id: str, new_title: str) -> None:
        """Replace a task's title."""
        ...
