"""Progress sink interface."""

from typing import Protocol

from timecraft.progress import ProgressEvent


class ProgressSink(Protocol):
    """Fire-and-forget receiver of progress events."""

    def publish(self, event: ProgressEvent) -> None:
        ...
