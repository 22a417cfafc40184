"""Deterministic task failure classification for scheduler retry policy."""

from __future__ import annotations

from dataclasses import dataclass

from taskbatch.scheduler.errors import NonRetryableTaskError, TaskTimeoutError
from taskbatch.scheduler.models import FailureClass

TASK_FAILURE_CLASSIFIER_VERSION = 1

_RETRYABLE_CLASSES = frozenset({FailureClass.TASK_ERROR, FailureClass.TIMEOUT})


@dataclass(slots=True, frozen=True)
class TaskFailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    reason_code: str
    error_type: str

    @property
    def retryable(self) -> bool:
        return self.failure_class in _RETRYABLE_CLASSES

    def to_event_details(self) -> dict[str, object]:
        """Serialize classifier diagnostics for logs and exports."""

        return {
            "classifier_version": TASK_FAILURE_CLASSIFIER_VERSION,
            "failure_class": self.failure_class.value,
            "reason_code": self.reason_code,
            "error_type": self.error_type,
        }


def classify_task_failure(error: BaseException) -> TaskFailureClassification:
    """Classify one processor failure into a retry class."""

    error_type = type(error).__name__

    if isinstance(error, TaskTimeoutError):
        return TaskFailureClassification(
            failure_class=FailureClass.TIMEOUT,
            reason_code="attempt_timeout",
            error_type=error_type,
        )

    if isinstance(error, NonRetryableTaskError):
        return TaskFailureClassification(
            failure_class=FailureClass.NON_RETRYABLE,
            reason_code="processor_non_retryable",
            error_type=error_type,
        )

    return TaskFailureClassification(
        failure_class=FailureClass.TASK_ERROR,
        reason_code="processor_error",
        error_type=error_type,
    )
