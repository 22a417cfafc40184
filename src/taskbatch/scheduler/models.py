"""Domain models for batch tasks and scheduler snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from taskbatch.scheduler.errors import InvalidTransitionError

if TYPE_CHECKING:
    from taskbatch.scheduler.capability import ProcessorAdapter

DEFAULT_TASK_NAME = "Untitled Task"


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED},
)

_ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.CANCELLED}),
    TaskStatus.RUNNING: frozenset(
        {
            TaskStatus.COMPLETED,
            TaskStatus.RETRYING,
            TaskStatus.FAILED,
            TaskStatus.CANCELLED,
        },
    ),
    TaskStatus.RETRYING: frozenset({TaskStatus.PENDING, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


class FailureClass(str, Enum):
    """Normalized failure classes used by retry policy."""

    TASK_ERROR = "task_error"
    TIMEOUT = "timeout"
    NON_RETRYABLE = "non_retryable"


@dataclass(slots=True)
class TaskSpec:
    """Input payload for submitting one task."""

    processor: Any
    data: Any = None
    options: dict[str, Any] = field(default_factory=dict)
    name: str = DEFAULT_TASK_NAME
    description: str = ""

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> TaskSpec:
        """Build a spec from a ``{processor, data, options, name, description}`` mapping."""

        if "processor" not in payload:
            raise ValueError("Task payload requires a 'processor' entry.")
        options = dict(payload.get("options") or {})
        return cls(
            processor=payload["processor"],
            data=payload.get("data"),
            options=options,
            name=str(payload.get("name") or options.get("name") or DEFAULT_TASK_NAME),
            description=str(payload.get("description") or options.get("description") or ""),
        )


@dataclass(slots=True, frozen=True)
class TaskView:
    """Read-only task snapshot for callers and notification listeners."""

    task_id: str
    name: str
    description: str
    status: TaskStatus
    progress: int
    data: Any
    options: Mapping[str, Any]
    result: Any
    error: str | None
    failure_class: FailureClass | None
    retry_count: int
    submitted_at: datetime
    started_at: datetime | None
    finished_at: datetime | None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return max(0.0, (self.finished_at - self.started_at).total_seconds())


@dataclass(slots=True, eq=False)
class TaskRecord:
    """One submitted unit of work and its mutable run state.

    Records are owned by exactly one scheduler and live in exactly one of its
    collections (queue, running, completed, failed) until they are cancelled.
    """

    processor: ProcessorAdapter
    data: Any
    options: dict[str, Any]
    name: str = DEFAULT_TASK_NAME
    description: str = ""
    task_id: str = field(default_factory=lambda: uuid4().hex)
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    error: BaseException | None = None
    failure_class: FailureClass | None = None
    result: Any = None
    retry_count: int = 0
    submitted_at: datetime = field(default_factory=utc_now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return max(0.0, (self.finished_at - self.started_at).total_seconds())

    def transition(self, status_to: TaskStatus) -> None:
        """Move to ``status_to`` or raise if the lifecycle forbids it."""

        if status_to not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.task_id, self.status.value, status_to.value)
        self.status = status_to

    def reset_for_retry(self) -> None:
        """Return a retrying task to ``pending`` with per-attempt state cleared."""

        self.transition(TaskStatus.PENDING)
        self.error = None
        self.failure_class = None
        self.result = None
        self.progress = 0

    def revive(self) -> None:
        """Resubmit a permanently failed task with a fresh retry budget."""

        if self.status is not TaskStatus.FAILED:
            raise InvalidTransitionError(self.task_id, self.status.value, TaskStatus.PENDING.value)
        self.status = TaskStatus.PENDING
        self.error = None
        self.failure_class = None
        self.result = None
        self.progress = 0
        self.retry_count = 0
        self.started_at = None
        self.finished_at = None

    def to_view(self) -> TaskView:
        return TaskView(
            task_id=self.task_id,
            name=self.name,
            description=self.description,
            status=self.status,
            progress=self.progress,
            data=self.data,
            options=MappingProxyType(dict(self.options)),
            result=self.result,
            error=_error_message(self.error),
            failure_class=self.failure_class,
            retry_count=self.retry_count,
            submitted_at=self.submitted_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


@dataclass(slots=True, frozen=True)
class BatchStats:
    """Point-in-time scheduler statistics."""

    total_tasks: int = 0
    processed_tasks: int = 0
    pending_tasks: int = 0
    running_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    overall_progress: int = 0
    elapsed_seconds: float = 0.0
    is_processing: bool = False
    is_paused: bool = False
    success_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _error_message(error: BaseException | None) -> str | None:
    if error is None:
        return None
    return str(error) or type(error).__name__
