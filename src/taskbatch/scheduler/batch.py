"""Bounded-concurrency batch scheduler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from taskbatch.config import SchedulerSettings
from taskbatch.scheduler.capability import resolve_processor
from taskbatch.scheduler.errors import SchedulerAlreadyRunningError, TaskTimeoutError
from taskbatch.scheduler.failure_classifier import classify_task_failure
from taskbatch.scheduler.models import (
    BatchStats,
    TaskRecord,
    TaskSpec,
    TaskStatus,
    TaskView,
    utc_now,
)
from taskbatch.scheduler.notifications import (
    CompleteEvent,
    ErrorEvent,
    EventBus,
    NotificationSink,
    ProgressEvent,
    build_error_event,
)
from taskbatch.scheduler.progress import (
    build_complete_event,
    build_export,
    build_stats,
    overall_progress,
)
from taskbatch.scheduler.task_queue import TaskQueue

logger = logging.getLogger(__name__)


class BatchScheduler:
    """Runs submitted tasks under a concurrency cap with bounded retries.

    All state lives on one asyncio loop. Tasks are admitted from the queue in
    FIFO order while fewer than ``max_concurrency`` are running; each admitted
    task runs as its own asyncio task, and the loop sleeps on an event that is
    set whenever a task leaves the running set or a control method is called.

    Failed attempts are retried up to ``max_retries`` times. A retrying task
    keeps its running slot for ``retry_delay_seconds`` and then re-enters the
    queue at the head, ahead of later submissions.
    """

    def __init__(  # noqa: PLR0913
        self,
        settings: SchedulerSettings | None = None,
        *,
        job_id: str | None = None,
        event_bus: EventBus | None = None,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        on_error: Callable[[ErrorEvent], None] | None = None,
        on_complete: Callable[[CompleteEvent], None] | None = None,
    ) -> None:
        self._settings = settings or SchedulerSettings()
        self._settings.validate()
        self._job_id = job_id
        self._notifications = NotificationSink(
            event_bus=event_bus,
            on_progress=on_progress,
            on_error=on_error,
            on_complete=on_complete,
        )
        self._queue = TaskQueue()
        self._running: list[TaskRecord] = []
        self._completed: list[TaskRecord] = []
        self._failed: list[TaskRecord] = []
        self._inflight: set[asyncio.Task[None]] = set()
        self._total_tasks = 0
        self._processed_tasks = 0
        self._is_processing = False
        self._is_paused = False
        self._session = 0
        self._wakeup: asyncio.Event | None = None
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None

    @property
    def job_id(self) -> str | None:
        return self._job_id

    @property
    def settings(self) -> SchedulerSettings:
        return self._settings

    @property
    def event_bus(self) -> EventBus:
        return self._notifications.event_bus

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def total_tasks(self) -> int:
        return self._total_tasks

    @property
    def processed_tasks(self) -> int:
        return self._processed_tasks

    # -- submission -------------------------------------------------------------

    def add_task(self, task: TaskSpec | Mapping[str, Any]) -> str:
        """Queue one task and return its id.

        Raises ``InvalidProcessorError`` when the processor is neither a
        callable nor an object with ``execute``; nothing is queued then.
        """

        spec = task if isinstance(task, TaskSpec) else TaskSpec.from_mapping(task)
        record = TaskRecord(
            processor=resolve_processor(spec.processor),
            data=spec.data,
            options=dict(spec.options),
            name=spec.name,
            description=spec.description,
        )
        self._queue.append(record)
        self._total_tasks += 1
        logger.debug(
            "Task queued task=%s name=%s job=%s",
            record.task_id,
            record.name,
            self._job_id,
        )
        self._wake()
        return record.task_id

    def add_tasks(self, tasks: Iterable[TaskSpec | Mapping[str, Any]]) -> list[str]:
        return [self.add_task(task) for task in tasks]

    # -- lifecycle --------------------------------------------------------------

    async def start(self) -> None:
        """Process the queue until it and the running set are empty.

        After ``pause()`` the session ends as soon as the running set drains;
        queued tasks stay pending and ``start()`` picks them up again. A
        ``resume()`` that arrives before the running set drains keeps the
        session going.

        Task failures never propagate out of this coroutine; inspect
        ``export_results()`` afterwards. Exactly one completion notification
        is delivered per call.
        """

        if self._is_processing:
            raise SchedulerAlreadyRunningError(self._job_id)

        self._session += 1
        session = self._session
        self._is_processing = True
        self._is_paused = False
        self._wakeup = asyncio.Event()
        started_at = utc_now()
        self._started_at = started_at
        self._finished_at = None
        logger.info(
            "Batch started job=%s queued=%d max_concurrency=%d",
            self._job_id,
            len(self._queue),
            self._settings.max_concurrency,
        )

        try:
            await self._process_queue(session)
        except Exception as error:
            logger.exception("Batch loop failed job=%s", self._job_id)
            self._notifications.error(build_error_event(None, error))
        finally:
            finished_at = utc_now()
            if self._session == session:
                self._is_processing = False
                self._finished_at = finished_at
            logger.info(
                "Batch finished job=%s completed=%d failed=%d",
                self._job_id,
                len(self._completed),
                len(self._failed),
            )
            self._notifications.complete(
                build_complete_event(
                    total_tasks=self._total_tasks,
                    completed_tasks=len(self._completed),
                    failed_tasks=len(self._failed),
                    started_at=started_at,
                    finished_at=finished_at,
                ),
            )

    def pause(self) -> None:
        """Stop admitting new tasks; running tasks finish normally.

        The current ``start()`` returns once nothing is running.
        """

        self._is_paused = True
        self._wake()

    def resume(self) -> None:
        if self._is_processing and self._is_paused:
            self._is_paused = False
            logger.info("Batch resumed job=%s", self._job_id)
            self._wake()

    def stop(self) -> None:
        """Cancel every queued and running task and end the session.

        Processor coroutines already in flight are not interrupted; whatever
        they return or raise afterwards is discarded.
        """

        cancelled = self._cancel_records([*self._running, *self._queue.drain()])
        self._running.clear()
        if self._is_processing:
            self._session += 1
            self._finished_at = utc_now()
        self._is_processing = False
        self._is_paused = False
        logger.info("Batch stopped job=%s cancelled=%d", self._job_id, cancelled)
        self._wake()

    def clear(self) -> None:
        """Drop all tasks and reset counters, whatever the processing state."""

        self._cancel_records([*self._running, *self._queue.drain()])
        self._running.clear()
        self._completed.clear()
        self._failed.clear()
        self._total_tasks = 0
        self._processed_tasks = 0
        if self._is_processing:
            self._session += 1
        self._is_processing = False
        self._is_paused = False
        self._started_at = None
        self._finished_at = None
        self._wake()

    def retry_failed_tasks(self) -> int:
        """Move permanently failed tasks back to the queue tail."""

        records = self._failed
        self._failed = []
        for record in records:
            record.revive()
            self._queue.append(record)
        self._processed_tasks -= len(records)
        if records:
            logger.info("Requeued failed tasks job=%s count=%d", self._job_id, len(records))
            self._wake()
        return len(records)

    def remove_task(self, task_id: str) -> bool:
        """Withdraw a queued or running task from the batch."""

        record = self._queue.remove(task_id)
        if record is None:
            record = next((item for item in self._running if item.task_id == task_id), None)
            if record is None:
                return False
            self._running.remove(record)
        self._cancel_records([record])
        self._total_tasks -= 1
        self._wake()
        return True

    def set_options(self, **changes: Any) -> SchedulerSettings:
        """Replace configuration fields; applies from the next admission."""

        settings = replace(self._settings, **changes)
        settings.validate()
        self._settings = settings
        self._wake()
        return settings

    # -- queries ----------------------------------------------------------------

    def get_overall_progress(self) -> int:
        return overall_progress(
            total_tasks=self._total_tasks,
            completed=self._completed,
            running=self._running,
        )

    def get_stats(self) -> BatchStats:
        return build_stats(
            total_tasks=self._total_tasks,
            processed_tasks=self._processed_tasks,
            pending=len(self._queue),
            running=self._running,
            completed=self._completed,
            failed=self._failed,
            started_at=self._started_at,
            is_processing=self._is_processing,
            is_paused=self._is_paused,
            now=self._finished_at,
        )

    def get_failed_tasks(self) -> list[TaskView]:
        return [record.to_view() for record in self._failed]

    def get_completed_tasks(self) -> list[TaskView]:
        return [record.to_view() for record in self._completed]

    def get_running_tasks(self) -> list[TaskView]:
        return [record.to_view() for record in self._running]

    def get_all_tasks(self) -> list[TaskView]:
        return [
            record.to_view()
            for record in (*self._queue, *self._running, *self._completed, *self._failed)
        ]

    def export_results(self) -> dict[str, Any]:
        return build_export(
            stats=self.get_stats(),
            completed=self._completed,
            failed=self._failed,
        )

    # -- loop -------------------------------------------------------------------

    async def _process_queue(self, session: int) -> None:
        while self._session == session:
            if not self._is_paused:
                self._admit()
            if not self._running:
                return
            await self._wait_for_change()

    def _admit(self) -> None:
        while len(self._running) < self._settings.max_concurrency and self._queue:
            self._launch(self._queue.pop_next())

    def _launch(self, record: TaskRecord) -> None:
        record.transition(TaskStatus.RUNNING)
        record.started_at = utc_now()
        record.finished_at = None
        self._running.append(record)
        task = asyncio.create_task(self._run_task(record), name=f"taskbatch-{record.task_id}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _wait_for_change(self) -> None:
        wakeup = self._wakeup
        if wakeup is None:
            raise RuntimeError("Scheduler wakeup event is missing outside a session.")
        await wakeup.wait()
        wakeup.clear()

    def _wake(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    async def _run_task(self, record: TaskRecord) -> None:
        try:
            self._notify_progress(record, 0, "Starting...")
            try:
                result = await self._execute(record)
            except Exception as error:  # noqa: BLE001
                await self._handle_failure(record, error)
            else:
                self._handle_success(record, result)
        except Exception as error:
            logger.exception("Task runner failed task=%s job=%s", record.task_id, self._job_id)
            self._abandon(record, error)
        finally:
            self._wake()

    async def _execute(self, record: TaskRecord) -> Any:
        attempt = record.retry_count

        def report(progress: int, message: str | None = None) -> None:
            if record.status is not TaskStatus.RUNNING or record.retry_count != attempt:
                return
            value = min(100, max(record.progress, int(progress)))
            self._notify_progress(record, value, message)

        call = record.processor.invoke(record.data, record.options, report)
        timeout = self._settings.task_timeout_seconds
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout)
        except TimeoutError:
            raise TaskTimeoutError(timeout) from None

    def _handle_success(self, record: TaskRecord, result: Any) -> None:
        if record.status is not TaskStatus.RUNNING:
            logger.debug("Dropping late result for cancelled task=%s", record.task_id)
            return
        record.result = result
        record.transition(TaskStatus.COMPLETED)
        record.finished_at = utc_now()
        self._remove_running(record)
        self._completed.append(record)
        self._processed_tasks += 1
        logger.debug("Task %s -> completed", record.task_id)
        self._notify_progress(record, 100, "Completed")

    async def _handle_failure(self, record: TaskRecord, error: Exception) -> None:
        if record.status is not TaskStatus.RUNNING:
            logger.debug("Dropping late failure for cancelled task=%s: %s", record.task_id, error)
            return

        classification = classify_task_failure(error)
        record.error = error
        record.failure_class = classification.failure_class
        record.finished_at = utc_now()
        max_retries = self._settings.max_retries

        if classification.retryable and record.retry_count < max_retries:
            record.retry_count += 1
            record.transition(TaskStatus.RETRYING)
            delay = self._settings.retry_delay_seconds
            logger.warning(
                "Task %s failed (%s); retry %d/%d in %.2fs",
                record.task_id,
                classification.reason_code,
                record.retry_count,
                max_retries,
                delay,
            )
            self._notify_progress(
                record,
                record.progress,
                f"Retrying... ({record.retry_count}/{max_retries})",
            )
            await asyncio.sleep(delay)
            if record.status is not TaskStatus.RETRYING:
                return
            self._remove_running(record)
            record.reset_for_retry()
            self._queue.push_front(record)
            return

        record.transition(TaskStatus.FAILED)
        self._remove_running(record)
        self._failed.append(record)
        self._processed_tasks += 1
        logger.warning(
            "Task %s failed permanently after %d attempt(s): %s",
            record.task_id,
            record.retry_count + 1,
            classification.to_event_details(),
        )
        self._notifications.error(build_error_event(record.to_view(), error))

    def _abandon(self, record: TaskRecord, error: Exception) -> None:
        if record.is_terminal:
            return
        self._remove_running(record)
        record.status = TaskStatus.FAILED
        record.error = error
        record.finished_at = utc_now()
        self._failed.append(record)
        self._processed_tasks += 1
        self._notifications.error(build_error_event(record.to_view(), error))

    def _remove_running(self, record: TaskRecord) -> None:
        if record in self._running:
            self._running.remove(record)

    def _cancel_records(self, records: list[TaskRecord]) -> int:
        now = utc_now()
        for record in records:
            record.transition(TaskStatus.CANCELLED)
            record.finished_at = now
        return len(records)

    def _notify_progress(self, record: TaskRecord, progress: int, message: str | None) -> None:
        if record.status is TaskStatus.CANCELLED:
            return
        record.progress = progress
        self._notifications.progress(
            ProgressEvent(
                task=record.to_view(),
                task_progress=progress,
                task_message=message,
                overall_progress=self.get_overall_progress(),
                processed_tasks=self._processed_tasks,
                total_tasks=self._total_tasks,
                remaining_tasks=self._total_tasks - self._processed_tasks,
                running_tasks=len(self._running),
                completed_tasks=len(self._completed),
                failed_tasks=len(self._failed),
            ),
        )
