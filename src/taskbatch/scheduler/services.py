"""Task builders for common submission shapes."""

from __future__ import annotations

import inspect
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from taskbatch.scheduler.capability import ProgressReporter
from taskbatch.scheduler.models import DEFAULT_TASK_NAME, TaskSpec

_RELAY_MARKER = "_taskbatch_progress_relay"
_active_reporter: ContextVar[ProgressReporter | None] = ContextVar(
    "taskbatch_active_reporter",
    default=None,
)


def create_task(processor: Any, data: Any, options: dict[str, Any] | None = None) -> TaskSpec:
    """Build a task spec; ``name`` and ``description`` are read from options."""

    options = dict(options or {})
    return TaskSpec(
        processor=processor,
        data=data,
        options=options,
        name=str(options.get("name") or DEFAULT_TASK_NAME),
        description=str(options.get("description") or ""),
    )


def create_tool_task(
    tool: Any,
    path: str | Path,
    options: dict[str, Any] | None = None,
) -> TaskSpec:
    """Wrap a file tool as a task that applies it to ``path``.

    The tool exposes ``execute(data, options)`` and, optionally,
    ``show_progress(progress, message)``. While the task runs, progress the
    tool shows is also reported to the scheduler for this task only.
    """

    file_name = Path(path).name
    tool_name = str(getattr(tool, "name", type(tool).__name__))
    _install_progress_relay(tool)

    async def run_tool(data: Any, opts: dict[str, Any], report: ProgressReporter) -> Any:
        token = _active_reporter.set(report)
        try:
            result = tool.execute(data, opts)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            _active_reporter.reset(token)

    return create_task(
        run_tool,
        path,
        {
            **(options or {}),
            "name": f"Process {file_name}",
            "description": f"Processing {file_name} with {tool_name}",
        },
    )


def _install_progress_relay(tool: Any) -> None:
    hook = getattr(tool, "show_progress", None)
    if not callable(hook) or getattr(hook, _RELAY_MARKER, False):
        return

    def relay(progress: int, message: str | None = None) -> None:
        reporter = _active_reporter.get()
        if reporter is not None:
            reporter(progress, message)
        hook(progress, message)

    setattr(relay, _RELAY_MARKER, True)
    tool.show_progress = relay
