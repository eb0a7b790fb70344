"""Suggestion data model and cache reconciliation - no I/O dependencies."""

from dataclasses import dataclass
from typing import Iterable, NamedTuple

from .tasks import Task

SUGGESTION_COUNT = 5


@dataclass(frozen=True)
class Suggestion:
    """One alternative title proposal for a task."""

    new_title: str
    reason: str
    estimated_duration_minutes: int

    def to_dict(self) -> dict:
        return {
            "new_title": self.new_title,
            "reason": self.reason,
            "estimated_duration_minutes": self.estimated_duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Suggestion":
        return cls(
            new_title=str(data["new_title"]),
            reason=str(data.get("reason", "")),
            estimated_duration_minutes=int(data.get("estimated_duration_minutes", 0)),
        )


@dataclass(frozen=True)
class SuggestionSet:
    """The batch of title proposals generated for one task."""

    task_id: str
    suggestions: tuple[Suggestion, ...]

    def __post_init__(self):
        if len(self.suggestions) != SUGGESTION_COUNT:
            raise ValueError(
                f"A suggestion set holds exactly {SUGGESTION_COUNT} suggestions, "
                f"got {len(self.suggestions)} for task {self.task_id}"
            )

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "suggestions": [s.to_dict() for s in self.suggestions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionSet":
        return cls(
            task_id=str(data["task_id"]),
            suggestions=tuple(Suggestion.from_dict(s) for s in data["suggestions"]),
        )


class Reconciliation(NamedTuple):
    """Outcome of comparing the cache with the relevant task set."""

    missing: list[Task]
    orphaned: list[str]


def reconcile(
    cached_ids: Iterable[str],
    relevant: list[Task],
    optimized_ids: Iterable[str] = (),
) -> Reconciliation:
    """
    Work out which tasks need suggestions and which cache entries are stale.

    missing: relevant tasks with no cached set that are not optimized.
    orphaned: cached ids outside the relevant set, in cache order.
    Pure function - no I/O.
    """
    cached = list(cached_ids)
    cached_set = set(cached)
    optimized = set(optimized_ids)
    relevant_ids = {t.id for t in relevant}

    missing = [
        t for t in relevant
        if t.id not in cached_set and not t.optimized and t.id not in optimized
    ]
    orphaned = [task_id for task_id in cached if task_id not in relevant_ids]
    return Reconciliation(missing=missing, orphaned=orphaned)
