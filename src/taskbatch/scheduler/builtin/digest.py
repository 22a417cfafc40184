"""File checksum processor."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Any

from taskbatch.scheduler.capability import ProgressReporter
from taskbatch.scheduler.errors import NonRetryableTaskError

DEFAULT_ALGORITHM = "sha256"
DEFAULT_CHUNK_SIZE = 1024 * 1024


class FileDigestProcessor:
    """Hash a file in chunks, reporting progress by bytes read.

    Reads run in a worker thread so large files do not stall the scheduler
    loop. Missing files and unknown algorithms fail without retries.
    """

    name = "digest"

    async def __call__(
        self,
        data: Any,
        options: dict[str, Any],
        report: ProgressReporter,
    ) -> dict[str, object]:
        path = Path(data)
        algorithm = str(options.get("algorithm", DEFAULT_ALGORITHM)).lower()
        chunk_size = int(options.get("chunk_size", DEFAULT_CHUNK_SIZE))
        if chunk_size <= 0:
            raise NonRetryableTaskError(f"chunk_size must be > 0, got {chunk_size}")
        try:
            hasher = hashlib.new(algorithm)
        except ValueError as error:
            raise NonRetryableTaskError(f"Unsupported digest algorithm: {algorithm!r}") from error
        if not path.is_file():
            raise NonRetryableTaskError(f"File not found: {path}")

        size_bytes = path.stat().st_size
        read_bytes = 0
        with path.open("rb") as handle:
            while True:
                chunk = await asyncio.to_thread(handle.read, chunk_size)
                if not chunk:
                    break
                hasher.update(chunk)
                read_bytes += len(chunk)
                if size_bytes:
                    report(
                        int(read_bytes * 100 / size_bytes),
                        f"Hashed {read_bytes}/{size_bytes} bytes",
                    )

        return {
            "path": str(path),
            "algorithm": algorithm,
            "digest": hasher.hexdigest(),
            "size_bytes": read_bytes,
        }
