from __future__ import annotations

from datetime import timedelta

import allure

from taskbatch.scheduler.capability import resolve_processor
from taskbatch.scheduler.models import BatchStats, TaskRecord, TaskStatus, utc_now
from taskbatch.scheduler.progress import (
    build_complete_event,
    build_export,
    build_stats,
    overall_progress,
    render_stats_lines,
)

pytestmark = [
    allure.epic("Batch Engine"),
    allure.feature("Progress & Notifications"),
]


def _record(progress: int = 0, data: object = None) -> TaskRecord:
    record = TaskRecord(
        processor=resolve_processor(lambda data, options, report: data),
        data=data,
        options={},
    )
    record.progress = progress
    return record


def test_overall_progress_blends_completed_and_running() -> None:
    completed = [_record(100), _record(100)]
    running = [_record(50), _record(25)]

    assert overall_progress(total_tasks=5, completed=completed, running=running) == 55
    assert overall_progress(total_tasks=0, completed=[], running=[]) == 0
    assert overall_progress(total_tasks=3, completed=[], running=[_record(1)]) == 0


def test_build_stats_counts_collections() -> None:
    started_at = utc_now() - timedelta(seconds=4)
    stats = build_stats(
        total_tasks=4,
        processed_tasks=2,
        pending=1,
        running=[_record(50)],
        completed=[_record(100)],
        failed=[_record()],
        started_at=started_at,
        is_processing=True,
        is_paused=False,
        now=started_at + timedelta(seconds=2),
    )

    assert stats == BatchStats(
        total_tasks=4,
        processed_tasks=2,
        pending_tasks=1,
        running_tasks=1,
        completed_tasks=1,
        failed_tasks=1,
        overall_progress=38,
        elapsed_seconds=2.0,
        is_processing=True,
        is_paused=False,
        success_rate=25.0,
    )


def test_complete_event_averages_over_all_tasks() -> None:
    started_at = utc_now()
    event = build_complete_event(
        total_tasks=4,
        completed_tasks=3,
        failed_tasks=1,
        started_at=started_at,
        finished_at=started_at + timedelta(seconds=2),
    )

    assert event.duration_seconds == 2.0
    assert event.average_time_seconds == 0.5
    assert event.success_rate == 75.0


def test_export_lists_completed_and_failed_records() -> None:
    done = _record(100, data="a")
    done.status = TaskStatus.COMPLETED
    done.result = "A"
    failed = _record(data="b")
    failed.error = RuntimeError("nope")
    failed.retry_count = 2

    export = build_export(stats=BatchStats(total_tasks=2), completed=[done], failed=[failed])

    assert export["stats"]["total_tasks"] == 2
    assert export["completed"] == [
        {"id": done.task_id, "data": "a", "result": "A", "duration_seconds": None},
    ]
    assert export["failed"] == [
        {"id": failed.task_id, "data": "b", "error": "nope", "retry_count": 2},
    ]


def test_render_stats_lines() -> None:
    stats = BatchStats(
        total_tasks=3,
        processed_tasks=3,
        completed_tasks=2,
        failed_tasks=1,
        overall_progress=67,
        elapsed_seconds=1.234,
        success_rate=200 / 3,
    )

    assert render_stats_lines(stats=stats, job_id="cli") == [
        "Batch summary (job=cli)",
        "Tasks: total=3 processed=3 pending=0 running=0",
        "Outcome: completed=2 failed=1",
        "Progress: overall=67% success_rate=66.7%",
        "Elapsed: 1.23s",
    ]
    assert render_stats_lines(stats=BatchStats())[0] == "Batch summary"
