"""Batch-wide progress aggregation, statistics and result export."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from taskbatch.scheduler.models import BatchStats, TaskRecord, utc_now
from taskbatch.scheduler.notifications import CompleteEvent


def overall_progress(
    *,
    total_tasks: int,
    completed: Sequence[TaskRecord],
    running: Iterable[TaskRecord],
) -> int:
    """Progress toward success across the whole batch, 0..100.

    Completed tasks count as 100 and running tasks contribute their own
    progress. Queued and failed tasks contribute nothing: a permanently failed
    task is resolved but did not move the batch toward success.
    """

    if total_tasks <= 0:
        return 0
    numerator = 100 * len(completed) + sum(record.progress for record in running)
    return round(numerator / total_tasks)


def build_stats(  # noqa: PLR0913
    *,
    total_tasks: int,
    processed_tasks: int,
    pending: int,
    running: Sequence[TaskRecord],
    completed: Sequence[TaskRecord],
    failed: Sequence[TaskRecord],
    started_at: datetime | None,
    is_processing: bool,
    is_paused: bool,
    now: datetime | None = None,
) -> BatchStats:
    """Build one statistics snapshot from the scheduler collections."""

    elapsed = 0.0
    if started_at is not None:
        elapsed = max(0.0, ((now or utc_now()) - started_at).total_seconds())
    return BatchStats(
        total_tasks=total_tasks,
        processed_tasks=processed_tasks,
        pending_tasks=pending,
        running_tasks=len(running),
        completed_tasks=len(completed),
        failed_tasks=len(failed),
        overall_progress=overall_progress(
            total_tasks=total_tasks,
            completed=completed,
            running=running,
        ),
        elapsed_seconds=elapsed,
        is_processing=is_processing,
        is_paused=is_paused,
        success_rate=_success_rate(len(completed), total_tasks),
    )


def build_complete_event(
    *,
    total_tasks: int,
    completed_tasks: int,
    failed_tasks: int,
    started_at: datetime | None,
    finished_at: datetime | None,
) -> CompleteEvent:
    duration = 0.0
    if started_at is not None and finished_at is not None:
        duration = max(0.0, (finished_at - started_at).total_seconds())
    return CompleteEvent(
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        failed_tasks=failed_tasks,
        duration_seconds=duration,
        average_time_seconds=duration / total_tasks if total_tasks > 0 else 0.0,
        success_rate=_success_rate(completed_tasks, total_tasks),
    )


def build_export(
    *,
    stats: BatchStats,
    completed: Sequence[TaskRecord],
    failed: Sequence[TaskRecord],
) -> dict[str, Any]:
    """Serialize final batch state: stats plus per-task outcomes."""

    return {
        "stats": stats.to_dict(),
        "completed": [
            {
                "id": record.task_id,
                "data": record.data,
                "result": record.result,
                "duration_seconds": record.duration_seconds,
            }
            for record in completed
        ],
        "failed": [
            {
                "id": record.task_id,
                "data": record.data,
                "error": None if record.error is None else str(record.error),
                "retry_count": record.retry_count,
            }
            for record in failed
        ],
    }


def render_stats_lines(*, stats: BatchStats, job_id: str | None = None) -> list[str]:
    """Render operator-facing statistics lines for CLI output."""

    header = f"Batch summary (job={job_id})" if job_id else "Batch summary"
    return [
        header,
        (
            "Tasks: "
            f"total={stats.total_tasks} processed={stats.processed_tasks} "
            f"pending={stats.pending_tasks} running={stats.running_tasks}"
        ),
        f"Outcome: completed={stats.completed_tasks} failed={stats.failed_tasks}",
        (
            "Progress: "
            f"overall={stats.overall_progress}% success_rate={_fmt_percent(stats.success_rate)}"
        ),
        f"Elapsed: {stats.elapsed_seconds:.2f}s",
    ]


def _success_rate(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return completed / total * 100


def _fmt_percent(value: float) -> str:
    return f"{value:.1f}%"
