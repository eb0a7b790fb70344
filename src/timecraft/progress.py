"""Progress and log broadcasting for live dashboard refreshes."""

import logging
import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Aggregation stages, in the order a refresh passes through them."""

    INIT = "init"
    LOADING_CALENDAR = "loading_calendar"
    LOADING_TASKS = "loading_tasks"
    RECONCILING_SUGGESTIONS = "reconciling_suggestions"
    OPTIMIZING = "optimizing"
    COMPLETE = "complete"
    ERROR = "error"
    LOG = "log"  # forwarded log record, not a state


@dataclass
class ProgressEvent:
    """One notification on the live stream."""

    stage: Stage
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"stage": self.stage.value, "message": self.message, **self.data}


class ProgressBroker:
    """
    Request-scoped publish/subscribe hub.

    Implements ProgressSink. Subscribers get their own unbounded queue;
    publishing never blocks on a slow or departed consumer.
    """

    def __init__(self):
        self._subscribers: set[queue.Queue] = set()
        self._lock = threading.Lock()

    @contextmanager
    def subscribe(self) -> Iterator[queue.Queue]:
        """Yield a queue receiving every event published while subscribed."""
        events: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.add(events)
        try:
            yield events
        finally:
            with self._lock:
                self._subscribers.discard(events)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: ProgressEvent) -> None:
        """Deliver `event` to all current subscribers."""
        with self._lock:
            subscribers = list(self._subscribers)
        for events in subscribers:
            events.put_nowait(event)


class BrokerLogHandler(logging.Handler):
    """Forward log records to a broker as LOG events."""

    def __init__(self, broker: ProgressBroker, level: int = logging.INFO):
        super().__init__(level)
        self.broker = broker

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.broker.publish(
                ProgressEvent(
                    stage=Stage.LOG,
                    message=self.format(record),
                    data={"level": record.levelname.lower(), "logger": record.name},
                )
            )
        except Exception:
            self.handleError(record)


@contextmanager
def forward_logs(
    broker: ProgressBroker,
    logger_name: str = "timecraft",
    propagate: bool = True,
) -> Iterator[None]:
    """Attach a BrokerLogHandler to `logger_name` for the duration of the block.

    With propagate=False the records reach only the broker, not the root
    handlers, so a console that prints broker events shows each line once.
    """
    handler = BrokerLogHandler(broker)
    target = logging.getLogger(logger_name)
    previous_level = target.level
    previous_propagate = target.propagate
    if previous_level == logging.NOTSET:
        target.setLevel(logging.INFO)
    target.propagate = propagate
    target.addHandler(handler)
    try:
        yield
    finally:
        target.removeHandler(handler)
        target.setLevel(previous_level)
        target.propagate = previous_propagate
