"""Controllers for batch CLI commands."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from taskbatch.config import SchedulerSettings, Settings
from taskbatch.scheduler.builtin.loader import BUILTIN_PROCESSORS, load_processor
from taskbatch.scheduler.notifications import ErrorEvent, ProgressEvent
from taskbatch.scheduler.progress import render_stats_lines
from taskbatch.scheduler.registry import SchedulerRegistry
from taskbatch.scheduler.services import create_task

CLI_JOB_ID = "cli"


@dataclass(slots=True)
class RunBatchCommand:
    """CLI input for one batch run."""

    inputs: tuple[str, ...]
    processor: str
    max_concurrency: int | None = None
    retry_count: int | None = None
    retry_delay_seconds: float | None = None
    task_timeout_seconds: float | None = None
    options: tuple[str, ...] = ()
    show_progress: bool = False
    output_format: str = "table"
    output_path: Path | None = None


@dataclass(slots=True)
class BatchRunResult:
    """Batch report to render in CLI."""

    lines: list[str]
    success: bool
    failed_tasks: int = 0


class BatchCliController:
    """Builds a scheduler from CLI input, runs it, and renders the outcome."""

    def run(self, command: RunBatchCommand) -> BatchRunResult:
        settings = Settings.from_env()
        scheduler_settings = _apply_overrides(settings.scheduler, command)
        processor = load_processor(command.processor)
        options = parse_options(command.options)
        lines: list[str] = []

        def _on_progress(event: ProgressEvent) -> None:
            if not command.show_progress:
                return
            message = f" {event.task_message}" if event.task_message else ""
            lines.append(
                f"[{event.overall_progress:3d}%] {event.task.name}: "
                f"{event.task_progress}%{message}",
            )

        def _on_error(event: ErrorEvent) -> None:
            name = event.task.name if event.task is not None else "<scheduler>"
            lines.append(f"Failed: {name} error={event.message}")

        with SchedulerRegistry(default_settings=scheduler_settings) as registry:
            scheduler = registry.create_processor(
                CLI_JOB_ID,
                on_progress=_on_progress,
                on_error=_on_error,
            )
            for item in command.inputs:
                scheduler.add_task(
                    create_task(
                        processor,
                        item,
                        {**options, "name": f"Process {item}"},
                    ),
                )
            asyncio.run(scheduler.start())
            export = scheduler.export_results()
            stats = scheduler.get_stats()

        if command.output_format == "json":
            payload = json.dumps(export, indent=2, ensure_ascii=False, default=str)
            if command.output_path is not None:
                command.output_path.write_text(payload + "\n", "utf-8")
                lines.append(f"Results written to {command.output_path}")
            else:
                lines = [payload]
        else:
            lines.extend(render_stats_lines(stats=stats, job_id=CLI_JOB_ID))
            for item in export["completed"]:
                lines.append(f"  ok {item['id']} data={item['data']} result={item['result']}")

        return BatchRunResult(
            lines=lines,
            success=stats.failed_tasks == 0,
            failed_tasks=stats.failed_tasks,
        )

    def list_processors(self) -> list[str]:
        return [
            f"{name}: {description}"
            for name, (_, description) in sorted(BUILTIN_PROCESSORS.items())
        ]


def parse_options(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; values are read as JSON when possible."""

    options: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid option {pair!r}. Expected format 'KEY=VALUE'.")
        try:
            options[key] = json.loads(raw)
        except json.JSONDecodeError:
            options[key] = raw
    return options


def _apply_overrides(base: SchedulerSettings, command: RunBatchCommand) -> SchedulerSettings:
    changes: dict[str, Any] = {}
    if command.max_concurrency is not None:
        changes["max_concurrency"] = command.max_concurrency
    if command.retry_count is not None:
        changes["max_retries"] = command.retry_count
    if command.retry_delay_seconds is not None:
        changes["retry_delay_seconds"] = command.retry_delay_seconds
    if command.task_timeout_seconds is not None:
        changes["task_timeout_seconds"] = command.task_timeout_seconds or None
    settings = replace(base, **changes)
    settings.validate()
    return settings
