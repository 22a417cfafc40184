from __future__ import annotations

import hashlib
import json

import allure
import pytest
from click.testing import CliRunner

from taskbatch import __version__
from taskbatch.main import taskbatch
from taskbatch.scheduler.controllers import parse_options

pytestmark = [
    allure.epic("Batch Engine"),
    allure.feature("CLI"),
]


@pytest.fixture(autouse=True)
def _fast_env(monkeypatch) -> None:
    monkeypatch.setenv("TASKBATCH_RETRY_DELAY_SECONDS", "0")
    for name in (
        "TASKBATCH_MAX_CONCURRENCY",
        "TASKBATCH_RETRY_COUNT",
        "TASKBATCH_TASK_TIMEOUT_SECONDS",
        "TASKBATCH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_version_option() -> None:
    result = CliRunner().invoke(taskbatch, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_processors_lists_builtins() -> None:
    result = CliRunner().invoke(taskbatch, ["processors"])

    assert result.exit_code == 0, result.output
    assert "digest:" in result.output
    assert "echo: Return each input unchanged." in result.output
    assert "flaky:" in result.output


def test_run_echo_prints_summary() -> None:
    result = CliRunner().invoke(
        taskbatch,
        ["run", "alpha", "beta", "--option", 'prefix="> "', "--max-concurrency", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "Batch summary (job=cli)" in result.output
    assert "Outcome: completed=2 failed=0" in result.output
    assert "result=> alpha" in result.output
    assert "result=> beta" in result.output


def test_run_with_progress_lines() -> None:
    result = CliRunner().invoke(taskbatch, ["run", "alpha", "--progress"])

    assert result.exit_code == 0, result.output
    assert "Process alpha: 0% Starting..." in result.output
    assert "[100%] Process alpha: 100% Completed" in result.output


def test_run_json_emits_only_export() -> None:
    result = CliRunner().invoke(taskbatch, ["run", "one", "two", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["stats"]["completed_tasks"] == 2
    assert sorted(item["result"] for item in payload["completed"]) == ["one", "two"]
    assert payload["failed"] == []


def test_run_digest_writes_output_file(tmp_path) -> None:
    source = tmp_path / "data.txt"
    source.write_text("hello", "utf-8")
    output = tmp_path / "results.json"

    result = CliRunner().invoke(
        taskbatch,
        ["run", str(source), "--processor", "digest", "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    assert f"Results written to {output}" in result.output
    payload = json.loads(output.read_text("utf-8"))
    assert payload["completed"][0]["result"]["digest"] == hashlib.sha256(b"hello").hexdigest()


def test_run_flaky_recovers_with_retries() -> None:
    result = CliRunner().invoke(
        taskbatch,
        ["run", "x", "--processor", "flaky", "--retry-count", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "Outcome: completed=1 failed=0" in result.output


def test_run_reports_failures_with_nonzero_exit() -> None:
    result = CliRunner().invoke(
        taskbatch,
        ["run", "x", "y", "--processor", "flaky", "--retry-count", "0"],
    )

    assert result.exit_code == 1
    assert "Failed: Process x error=Simulated failure 1/1" in result.output
    assert "Outcome: completed=0 failed=2" in result.output
    assert "2 task(s) failed." in result.output


def test_run_rejects_unknown_processor() -> None:
    result = CliRunner().invoke(taskbatch, ["run", "x", "--processor", "nope"])

    assert result.exit_code == 1
    assert "Unknown processor" in result.output


def test_run_rejects_malformed_option() -> None:
    result = CliRunner().invoke(taskbatch, ["run", "x", "--option", "novalue"])

    assert result.exit_code == 1
    assert "Expected format" in result.output


def test_run_requires_inputs() -> None:
    result = CliRunner().invoke(taskbatch, ["run"])

    assert result.exit_code == 2


def test_parse_options_reads_json_values() -> None:
    assert parse_options(("fail_times=3", "permanent=true", "label=plain text", "x=")) == {
        "fail_times": 3,
        "permanent": True,
        "label": "plain text",
        "x": "",
    }
