"""Deterministic failing processor for retry policy checks and benchmarks."""

from __future__ import annotations

from collections import Counter
from typing import Any

from taskbatch.scheduler.errors import NonRetryableTaskError


class FlakyProcessor:
    """Fails the first ``fail_times`` attempts for each payload, then succeeds.

    Options:
        fail_times: attempts to fail per payload (default 1).
        permanent: raise ``NonRetryableTaskError`` instead, so the scheduler
            gives up on the first failure.
    """

    name = "flaky"

    def __init__(self) -> None:
        self.attempts: Counter[str] = Counter()

    def execute(self, data: Any, options: dict[str, Any]) -> Any:
        key = repr(data)
        self.attempts[key] += 1
        attempt = self.attempts[key]
        fail_times = int(options.get("fail_times", 1))
        if attempt <= fail_times:
            message = f"Simulated failure {attempt}/{fail_times} for {key}"
            if options.get("permanent"):
                raise NonRetryableTaskError(message)
            raise RuntimeError(message)
        return data
