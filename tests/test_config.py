from __future__ import annotations

import allure
import pytest

from taskbatch.config import SchedulerSettings, Settings

pytestmark = [
    allure.epic("Batch Engine"),
    allure.feature("Configuration"),
]

_ENV_NAMES = (
    "TASKBATCH_MAX_CONCURRENCY",
    "TASKBATCH_RETRY_COUNT",
    "TASKBATCH_RETRY_DELAY_SECONDS",
    "TASKBATCH_TASK_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment() -> None:
    settings = Settings.from_env()

    assert settings.scheduler == SchedulerSettings(
        max_concurrency=3,
        max_retries=2,
        retry_delay_seconds=1.0,
        task_timeout_seconds=None,
    )


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_MAX_CONCURRENCY", "8")
    monkeypatch.setenv("TASKBATCH_RETRY_COUNT", "0")
    monkeypatch.setenv("TASKBATCH_RETRY_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("TASKBATCH_TASK_TIMEOUT_SECONDS", "30")

    scheduler = Settings.from_env().scheduler

    assert scheduler.max_concurrency == 8
    assert scheduler.max_retries == 0
    assert scheduler.retry_delay_seconds == 0.25
    assert scheduler.task_timeout_seconds == 30.0


def test_zero_timeout_disables_it(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_TASK_TIMEOUT_SECONDS", "0")

    assert Settings.from_env().scheduler.task_timeout_seconds is None


def test_invalid_integer_is_reported_with_variable_name(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_MAX_CONCURRENCY", "many")

    with pytest.raises(ValueError, match="Invalid integer value for TASKBATCH_MAX_CONCURRENCY"):
        Settings.from_env()


def test_invalid_number_is_reported_with_variable_name(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_RETRY_DELAY_SECONDS", "soon")

    with pytest.raises(ValueError, match="Invalid numeric value for TASKBATCH_RETRY_DELAY"):
        Settings.from_env()


def test_out_of_range_environment_value_fails_validation(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_MAX_CONCURRENCY", "0")

    with pytest.raises(ValueError, match="max_concurrency must be >= 1"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"max_retries": -1}, "max_retries must be >= 0"),
        ({"retry_delay_seconds": -0.5}, "retry_delay_seconds must be >= 0"),
        ({"task_timeout_seconds": 0}, "task_timeout_seconds must be > 0"),
    ],
)
def test_validate_rejects_out_of_range_values(overrides: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        SchedulerSettings(**overrides).validate()
