"""Processor capability adapters.

A processor turns task data into a result. Two shapes are accepted:

- a callable ``processor(data, options, report)`` that may report progress
  through ``report(progress, message)``;
- an object exposing ``execute(data, options)``, which cannot report progress.

Either may be synchronous or return an awaitable. The shape is resolved once,
when the task is submitted, so an unusable processor never reaches the queue.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from taskbatch.scheduler.errors import InvalidProcessorError

ProgressReporter = Callable[[int, "str | None"], None]


class ExecuteObject(Protocol):
    """Processor object contract."""

    def execute(self, data: Any, options: dict[str, Any]) -> Any:
        """Process one payload."""


class ProcessorAdapter(Protocol):
    """Uniform invocation surface used by the scheduler."""

    supports_progress: bool

    async def invoke(
        self,
        data: Any,
        options: dict[str, Any],
        report: ProgressReporter,
    ) -> Any:
        """Run one attempt and return its result."""


@dataclass(slots=True, frozen=True)
class CallableProcessor:
    """Adapter for ``processor(data, options, report)`` callables."""

    func: Callable[..., Any]
    supports_progress: bool = True

    async def invoke(
        self,
        data: Any,
        options: dict[str, Any],
        report: ProgressReporter,
    ) -> Any:
        return await _settle(self.func(data, options, report))


@dataclass(slots=True, frozen=True)
class ExecuteObjectProcessor:
    """Adapter for objects exposing ``execute(data, options)``."""

    target: Any
    supports_progress: bool = False

    async def invoke(
        self,
        data: Any,
        options: dict[str, Any],
        report: ProgressReporter,  # noqa: ARG002
    ) -> Any:
        return await _settle(self.target.execute(data, options))


def resolve_processor(processor: object) -> ProcessorAdapter:
    """Select the adapter variant for a submitted processor."""

    if isinstance(processor, (CallableProcessor, ExecuteObjectProcessor)):
        return processor
    if callable(processor):
        return CallableProcessor(func=processor)
    if callable(getattr(processor, "execute", None)):
        return ExecuteObjectProcessor(target=processor)
    raise InvalidProcessorError(
        "Invalid processor: must be a callable or an object with an execute method, "
        f"got {type(processor).__name__}",
    )


async def _settle(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
