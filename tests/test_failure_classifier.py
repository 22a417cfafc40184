from __future__ import annotations

import asyncio

import allure

from taskbatch.scheduler import FailureClass, NonRetryableTaskError, TaskTimeoutError
from taskbatch.scheduler.failure_classifier import (
    TASK_FAILURE_CLASSIFIER_VERSION,
    classify_task_failure,
)

pytestmark = [
    allure.epic("Batch Engine"),
    allure.feature("Retry Policy"),
]


def test_classifier_version_is_stable() -> None:
    assert TASK_FAILURE_CLASSIFIER_VERSION == 1


def test_classifier_maps_timeout_to_retryable_timeout() -> None:
    classified = classify_task_failure(TaskTimeoutError(2.5))

    assert classified.failure_class == FailureClass.TIMEOUT
    assert classified.reason_code == "attempt_timeout"
    assert classified.retryable


def test_classifier_honours_non_retryable_marker() -> None:
    class MissingInput(NonRetryableTaskError):
        pass

    classified = classify_task_failure(MissingInput("no such file"))

    assert classified.failure_class == FailureClass.NON_RETRYABLE
    assert classified.reason_code == "processor_non_retryable"
    assert classified.error_type == "MissingInput"
    assert not classified.retryable


def test_classifier_falls_back_to_retryable_task_error() -> None:
    for error in (RuntimeError("boom"), ValueError("bad"), asyncio.TimeoutError()):
        classified = classify_task_failure(error)
        assert classified.failure_class == FailureClass.TASK_ERROR
        assert classified.reason_code == "processor_error"
        assert classified.retryable


def test_event_details_are_serializable() -> None:
    details = classify_task_failure(KeyError("x")).to_event_details()

    assert details == {
        "classifier_version": 1,
        "failure_class": "task_error",
        "reason_code": "processor_error",
        "error_type": "KeyError",
    }
