"""Console logging configuration for the CLI."""

from __future__ import annotations

import logging
import sys


def setup_logging(level: str | int = logging.WARNING) -> None:
    """Route log records to stderr with a timestamped format.

    Call once, before the first scheduler runs. Existing root handlers are
    replaced so repeated CLI invocations in one process do not duplicate output.
    """

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ),
    )
    root.addHandler(handler)
    logging.captureWarnings(True)
