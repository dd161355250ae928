"""Deduplicated work queue with modification tracking."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Dict, Generic, Hashable, Iterable, List, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


class ProcessingQueue(Generic[T]):
    """FIFO of pending notes plus the single "processing" exclusion flag."""

    def __init__(
        self, mtime_of: Callable[[T], float], *, logger: logging.Logger | None = None
    ) -> None:
        self.mtime_of = mtime_of
        self.logger = logger or LOGGER
        self._queue: Deque[T] = deque()
        self._last_seen: Dict[T, float] = {}
        self._processing = False

    def add(self, item: T) -> None:
        if item not in self._queue:
            self._queue.append(item)

    def remove(self, count: int) -> List[T]:
        taken: List[T] = []
        while self._queue and len(taken) < count:
            taken.append(self._queue.popleft())
        return taken

    def size(self) -> int:
        return len(self._queue)

    def is_empty(self) -> bool:
        return not self._queue

    def clear(self) -> None:
        self._queue.clear()

    def set_processing(self, processing: bool) -> None:
        self._processing = processing

    def is_currently_processing(self) -> bool:
        return self._processing

    def check_for_modifications(self, items: Iterable[T]) -> List[T]:
        """Return items whose modification time grew since the previous check.

        The first sighting of an item only records its time.
        """
        modified: List[T] = []
        for item in items:
            current = self.mtime_of(item)
            last = self._last_seen.get(item)
            if last is None or current > last:
                self._last_seen[item] = current
                if last is not None:
                    modified.append(item)

        if modified:
            self.logger.info("Found %d modified files", len(modified))
        return modified
