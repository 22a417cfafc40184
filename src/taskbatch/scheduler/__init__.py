"""In-process batch scheduler.

Tasks pair a processor capability with input data and options. A
``BatchScheduler`` admits them under a concurrency cap on one asyncio loop
and retries failures from the head of the queue. Progress, errors and batch
completion go to per-scheduler callbacks and to the shared ``EventBus``. A
``SchedulerRegistry`` owns named schedulers for the lifetime of a process.
"""

from taskbatch.scheduler.batch import BatchScheduler
from taskbatch.scheduler.errors import (
    InvalidProcessorError,
    InvalidTransitionError,
    NonRetryableTaskError,
    SchedulerAlreadyRunningError,
    TaskBatchError,
    TaskTimeoutError,
)
from taskbatch.scheduler.models import BatchStats, FailureClass, TaskSpec, TaskStatus, TaskView
from taskbatch.scheduler.notifications import CompleteEvent, ErrorEvent, EventBus, ProgressEvent
from taskbatch.scheduler.registry import SchedulerRegistry
from taskbatch.scheduler.services import create_task, create_tool_task

__all__ = [
    "BatchScheduler",
    "BatchStats",
    "CompleteEvent",
    "ErrorEvent",
    "EventBus",
    "FailureClass",
    "InvalidProcessorError",
    "InvalidTransitionError",
    "NonRetryableTaskError",
    "ProgressEvent",
    "SchedulerAlreadyRunningError",
    "SchedulerRegistry",
    "TaskBatchError",
    "TaskSpec",
    "TaskStatus",
    "TaskTimeoutError",
    "TaskView",
    "create_task",
    "create_tool_task",
]
