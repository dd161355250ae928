"""Processing-time tracking and adaptive batch sizing."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Sequence, TypeVar

from notefinder.utils.text import format_time

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

MIN_ADAPTIVE_BATCH = 5
MAX_ADAPTIVE_BATCH = 50


class ProcessingStats:
    """Exponential moving average of per-note processing time and size."""

    alpha = 0.2

    def __init__(self) -> None:
        self.reset()

    def update(self, processing_time: float, word_count: int) -> None:
        if self.samples == 0:
            self.avg_processing_time = processing_time
            self.avg_word_count = float(word_count)
        else:
            self.avg_processing_time = (
                self.alpha * processing_time + (1 - self.alpha) * self.avg_processing_time
            )
            self.avg_word_count = self.alpha * word_count + (1 - self.alpha) * self.avg_word_count
        self.samples += 1

    def has_enough_samples(self, min_samples: int = 5) -> bool:
        return self.samples >= min_samples

    def reset(self) -> None:
        self.avg_processing_time = 0.0
        self.avg_word_count = 0.0
        self.samples = 0


@dataclass(slots=True)
class BatchConfig:
    batch_size: int = 20
    adaptive_batching: bool = True
    target_batch_time: float = 10.0  # seconds


class BatchProcessor:
    """Splits work into batches sized to take roughly constant wall time."""

    def __init__(self, config: BatchConfig, *, logger: logging.Logger | None = None) -> None:
        self.config = config
        self.logger = logger or LOGGER

    def create_batches(
        self, items: Sequence[T], avg_processing_time: float | None = None
    ) -> List[List[T]]:
        if not self.config.adaptive_batching or not avg_processing_time:
            return self._slice(items, max(self.config.batch_size, 1))

        size = max(
            MIN_ADAPTIVE_BATCH,
            min(MAX_ADAPTIVE_BATCH, math.floor(self.config.target_batch_time / avg_processing_time)),
        )
        batches = self._slice(items, size)
        self.logger.debug("Created %d adaptive batches (size: %d)", len(batches), size)
        return batches

    @staticmethod
    def _slice(items: Sequence[T], size: int) -> List[List[T]]:
        return [list(items[i : i + size]) for i in range(0, len(items), size)]

    def estimate_time_remaining(
        self, start_time: float, processed: int, total: int, now: float | None = None
    ) -> str:
        """Extrapolate the remaining time from the rate so far.

        ``start_time`` and ``now`` are ``time.monotonic()`` readings.
        """
        if processed == 0:
            return "calculating..."

        elapsed = (now if now is not None else time.monotonic()) - start_time
        if elapsed <= 0:
            return format_time(0)
        rate = processed / elapsed
        remaining = max(total - processed, 0) / rate
        return format_time(math.floor(remaining))
