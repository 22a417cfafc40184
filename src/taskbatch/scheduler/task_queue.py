"""FIFO holding area for tasks that have not started yet."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from taskbatch.scheduler.models import TaskRecord


class TaskQueue:
    """New submissions go to the tail, retries to the head."""

    def __init__(self) -> None:
        self._items: deque[TaskRecord] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[TaskRecord]:
        return iter(tuple(self._items))

    def append(self, record: TaskRecord) -> None:
        self._items.append(record)

    def push_front(self, record: TaskRecord) -> None:
        self._items.appendleft(record)

    def pop_next(self) -> TaskRecord:
        """Remove and return the head; raises ``IndexError`` when empty."""

        return self._items.popleft()

    def remove(self, task_id: str) -> TaskRecord | None:
        for record in self._items:
            if record.task_id == task_id:
                self._items.remove(record)
                return record
        return None

    def drain(self) -> list[TaskRecord]:
        """Empty the queue and return its former contents in order."""

        drained = list(self._items)
        self._items.clear()
        return drained

    def clear(self) -> None:
        self._items.clear()
