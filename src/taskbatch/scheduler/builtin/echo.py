"""Local demo processor that returns its input unchanged."""

from __future__ import annotations

from typing import Any

from taskbatch.scheduler.capability import ProgressReporter


async def echo_processor(data: Any, options: dict[str, Any], report: ProgressReporter) -> Any:
    """Return ``data``, optionally prefixed with ``options["prefix"]`` for strings."""

    prefix = options.get("prefix")
    report(100, "Echoed")
    if prefix and isinstance(data, str):
        return f"{prefix}{data}"
    return data
