"""Progress, error and completion notifications."""

from __future__ import annotations

import logging
import traceback
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from taskbatch.scheduler.models import TaskView

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "batch-progress"
ERROR_EVENT = "batch-error"
COMPLETE_EVENT = "batch-complete"


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """One task's progress together with the batch aggregate."""

    task: TaskView
    task_progress: int
    task_message: str | None
    overall_progress: int
    processed_tasks: int
    total_tasks: int
    remaining_tasks: int
    running_tasks: int
    completed_tasks: int
    failed_tasks: int


@dataclass(slots=True, frozen=True)
class ErrorEvent:
    """Permanent task failure, or a scheduler defect when ``task`` is None."""

    task: TaskView | None
    error: BaseException
    message: str
    stack: str


@dataclass(slots=True, frozen=True)
class CompleteEvent:
    """End of one ``start()`` session."""

    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    duration_seconds: float
    average_time_seconds: float
    success_rate: float


Listener = Callable[[Any], None]


class EventBus:
    """Process-wide broadcast channel.

    Delivery is synchronous and best effort: a subscriber only sees events
    published after it subscribed.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: Listener) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""

        self._subscribers[event_name].append(handler)

        def _unsubscribe() -> None:
            handlers = self._subscribers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event_name: str, payload: object) -> None:
        for handler in list(self._subscribers.get(event_name, ())):
            _deliver(handler, payload, channel=event_name)

    def subscriber_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, ()))


class NotificationSink:
    """Delivers scheduler events to per-scheduler callbacks and the bus."""

    def __init__(
        self,
        *,
        event_bus: EventBus | None = None,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        on_error: Callable[[ErrorEvent], None] | None = None,
        on_complete: Callable[[CompleteEvent], None] | None = None,
    ) -> None:
        self.event_bus = event_bus or EventBus()
        self.on_progress = on_progress
        self.on_error = on_error
        self.on_complete = on_complete

    def progress(self, event: ProgressEvent) -> None:
        if self.on_progress is not None:
            _deliver(self.on_progress, event, channel="on_progress")
        self.event_bus.publish(PROGRESS_EVENT, event)

    def error(self, event: ErrorEvent) -> None:
        if self.on_error is not None:
            _deliver(self.on_error, event, channel="on_error")
        self.event_bus.publish(ERROR_EVENT, event)

    def complete(self, event: CompleteEvent) -> None:
        if self.on_complete is not None:
            _deliver(self.on_complete, event, channel="on_complete")
        self.event_bus.publish(COMPLETE_EVENT, event)


def build_error_event(task: TaskView | None, error: BaseException) -> ErrorEvent:
    return ErrorEvent(
        task=task,
        error=error,
        message=str(error) or type(error).__name__,
        stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
    )


def _deliver(handler: Listener, payload: object, *, channel: str) -> None:
    try:
        handler(payload)
    except Exception:
        logger.exception("Notification listener failed channel=%s", channel)
