"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from taskbatch.config import SchedulerSettings
from taskbatch.scheduler.batch import BatchScheduler
from taskbatch.scheduler.notifications import CompleteEvent, ErrorEvent, ProgressEvent


class EventRecorder:
    """Collects scheduler notifications in delivery order."""

    def __init__(self) -> None:
        self.progress: list[ProgressEvent] = []
        self.errors: list[ErrorEvent] = []
        self.completions: list[CompleteEvent] = []

    def callbacks(self) -> dict[str, Callable[[Any], None]]:
        return {
            "on_progress": self.progress.append,
            "on_error": self.errors.append,
            "on_complete": self.completions.append,
        }


@pytest.fixture()
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture()
def make_scheduler(recorder: EventRecorder) -> Callable[..., BatchScheduler]:
    """Build a scheduler with zero retry delay wired to ``recorder``."""

    def _make(**overrides: Any) -> BatchScheduler:
        values: dict[str, Any] = {"retry_delay_seconds": 0.0}
        values.update(overrides)
        return BatchScheduler(SchedulerSettings(**values), **recorder.callbacks())

    return _make


async def succeed_twice(data: Any, options: dict[str, Any], report) -> Any:
    """Async processor that reports halfway progress and doubles its input."""

    await asyncio.sleep(0)
    report(50, "halfway")
    await asyncio.sleep(0)
    return data * 2


@pytest.fixture(name="succeed_twice")
def succeed_twice_fixture():
    return succeed_twice
