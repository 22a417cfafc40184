"""Resolve processor references given on the command line."""

from __future__ import annotations

import importlib
from collections.abc import Callable

from taskbatch.scheduler.builtin.digest import FileDigestProcessor
from taskbatch.scheduler.builtin.echo import echo_processor
from taskbatch.scheduler.builtin.flaky import FlakyProcessor

BUILTIN_PROCESSORS: dict[str, tuple[Callable[[], object], str]] = {
    "echo": (lambda: echo_processor, "Return each input unchanged."),
    "digest": (FileDigestProcessor, "SHA-256 (or --option algorithm=...) of each input file."),
    "flaky": (FlakyProcessor, "Fail the first --option fail_times=N attempts per input."),
}


def load_processor(reference: str) -> object:
    """Return a processor for a built-in name or a ``package.module:attr`` path."""

    name = reference.strip()
    builtin = BUILTIN_PROCESSORS.get(name)
    if builtin is not None:
        factory, _ = builtin
        return factory()

    module_name, sep, attr_path = name.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(
            f"Unknown processor {reference!r}. Use one of "
            f"{', '.join(sorted(BUILTIN_PROCESSORS))} or 'package.module:attribute'.",
        )
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as error:
        raise ValueError(f"Cannot import processor module {module_name!r}: {error}") from error
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as error:
            raise ValueError(f"Processor {reference!r} has no attribute {part!r}") from error
    return target
