"""Named scheduler registry with explicit setup and teardown."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType

from taskbatch.config import SchedulerSettings
from taskbatch.scheduler.batch import BatchScheduler
from taskbatch.scheduler.notifications import CompleteEvent, ErrorEvent, EventBus, ProgressEvent

logger = logging.getLogger(__name__)

DEFAULT_JOB_ID = "default"


class SchedulerRegistry:
    """Owns zero or more named schedulers and the event bus they share.

    Construct one per process (or per test) and pass it to the code that
    needs it; ``cleanup()`` or leaving the ``with`` block stops every
    scheduler and forgets it.
    """

    def __init__(
        self,
        *,
        default_settings: SchedulerSettings | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.default_settings = default_settings or SchedulerSettings()
        self.event_bus = event_bus or EventBus()
        self._schedulers: dict[str, BatchScheduler] = {}
        self._default: BatchScheduler | None = None

    def __enter__(self) -> SchedulerRegistry:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.cleanup()

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._schedulers

    def __len__(self) -> int:
        return len(self._schedulers)

    def job_ids(self) -> list[str]:
        return list(self._schedulers)

    def create_processor(
        self,
        job_id: str,
        settings: SchedulerSettings | None = None,
        *,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        on_error: Callable[[ErrorEvent], None] | None = None,
        on_complete: Callable[[CompleteEvent], None] | None = None,
    ) -> BatchScheduler:
        """Create and register a scheduler; the first one becomes the default."""

        previous = self._schedulers.get(job_id)
        if previous is not None:
            logger.warning("Replacing scheduler job=%s", job_id)
            previous.stop()
        scheduler = BatchScheduler(
            settings or self.default_settings,
            job_id=job_id,
            event_bus=self.event_bus,
            on_progress=on_progress,
            on_error=on_error,
            on_complete=on_complete,
        )
        self._schedulers[job_id] = scheduler
        if self._default is None or self._default is previous:
            self._default = scheduler
        return scheduler

    def get_processor(self, job_id: str | None = None) -> BatchScheduler | None:
        """Scheduler registered under ``job_id``, else the default one."""

        if job_id is not None and job_id in self._schedulers:
            return self._schedulers[job_id]
        return self._default

    def get_default_processor(self) -> BatchScheduler:
        """Default scheduler; reuses or creates the one registered as ``"default"``."""

        if self._default is None:
            existing = self._schedulers.get(DEFAULT_JOB_ID)
            self._default = existing or self.create_processor(DEFAULT_JOB_ID)
        return self._default

    def remove_processor(self, job_id: str) -> bool:
        scheduler = self._schedulers.pop(job_id, None)
        if scheduler is None:
            return False
        scheduler.stop()
        if self._default is scheduler:
            self._default = None
        return True

    def cleanup(self) -> None:
        for scheduler in self._schedulers.values():
            scheduler.stop()
        count = len(self._schedulers)
        self._schedulers.clear()
        self._default = None
        if count:
            logger.info("Scheduler registry cleaned up schedulers=%d", count)
