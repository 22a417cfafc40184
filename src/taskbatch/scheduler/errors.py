"""Exception hierarchy for the batch scheduler."""

from __future__ import annotations


class TaskBatchError(RuntimeError):
    """Base class for scheduler errors."""


class SchedulerAlreadyRunningError(TaskBatchError):
    """``start()`` was called while a session is still processing."""

    def __init__(self, job_id: str | None = None) -> None:
        label = f" {job_id!r}" if job_id else ""
        super().__init__(f"Batch scheduler{label} is already running")
        self.job_id = job_id


class InvalidTransitionError(TaskBatchError):
    """A task was asked to move along an edge its lifecycle does not have."""

    def __init__(self, task_id: str, status_from: str, status_to: str) -> None:
        super().__init__(f"Task {task_id}: invalid transition {status_from} -> {status_to}")
        self.task_id = task_id
        self.status_from = status_from
        self.status_to = status_to


class InvalidProcessorError(TaskBatchError, TypeError):
    """Processor is neither a callable nor an object with ``execute``."""


class TaskExecutionError(TaskBatchError):
    """Processor attempt failure raised by the scheduler itself."""


class TaskTimeoutError(TaskExecutionError):
    """Processor attempt exceeded the configured per-task timeout."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Task timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class NonRetryableTaskError(TaskExecutionError):
    """Raised by a processor to fail the task without further attempts."""
