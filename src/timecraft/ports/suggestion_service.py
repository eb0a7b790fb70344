"""Suggestion generator interface."""

from typing import Protocol

from timecraft.core.suggestions import SuggestionSet
from timecraft.core.tasks import Task


class SuggestionService(Protocol):
    """Interface for generating title suggestions for one task."""

    def generate(self, task: Task, context_text: str) -> SuggestionSet:
        """Generate a suggestion set. Raises SuggestionError on failure."""
        ...
