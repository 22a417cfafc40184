"""Built-in processors."""

from taskbatch.scheduler.builtin.digest import FileDigestProcessor
from taskbatch.scheduler.builtin.echo import echo_processor
from taskbatch.scheduler.builtin.flaky import FlakyProcessor
from taskbatch.scheduler.builtin.loader import BUILTIN_PROCESSORS, load_processor

__all__ = [
    "BUILTIN_PROCESSORS",
    "FileDigestProcessor",
    "FlakyProcessor",
    "echo_processor",
    "load_processor",
]
