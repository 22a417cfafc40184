"""Runtime configuration for the batch scheduler."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(slots=True)
class SchedulerSettings:
    """Concurrency and retry policy for one scheduler."""

    max_concurrency: int = 3
    max_retries: int = 2
    retry_delay_seconds: float = 1.0
    task_timeout_seconds: float | None = None

    def validate(self) -> None:
        """Raise configuration error if any bound is out of range."""

        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1.")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0.")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0.")
        if self.task_timeout_seconds is not None and self.task_timeout_seconds <= 0:
            raise ValueError("task_timeout_seconds must be > 0 when set.")


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        settings = cls(
            scheduler=SchedulerSettings(
                max_concurrency=_env_int("TASKBATCH_MAX_CONCURRENCY", 3),
                max_retries=_env_int("TASKBATCH_RETRY_COUNT", 2),
                retry_delay_seconds=_env_float("TASKBATCH_RETRY_DELAY_SECONDS", 1.0),
                task_timeout_seconds=_env_optional_float("TASKBATCH_TASK_TIMEOUT_SECONDS"),
            ),
        )
        settings.scheduler.validate()
        return settings


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid numeric value for {name}: {raw!r}") from error


def _env_optional_float(name: str) -> float | None:
    value = _env_float(name, 0.0)
    if value == 0:
        return None
    return value
