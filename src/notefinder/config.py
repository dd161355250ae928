"""Application configuration defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from notefinder.chunking.chunker import ChunkingOptions
from notefinder.embedding.encoder import DEFAULT_MODEL


def _get_default_data_dir() -> Path:
    """Prefer a local data/ directory, otherwise ~/Documents/NoteFinder."""
    local_dir = Path("data")
    if local_dir.is_dir():
        return local_dir
    return Path.home() / "Documents" / "NoteFinder"


@dataclass(slots=True)
class ProcessingConfig:
    batch_size: int = 20
    min_word_count: int = 15
    adaptive_batching: bool = True
    check_interval_minutes: float = 5
    queue_delay: float = 0.1  # seconds between queue batches


@dataclass(slots=True)
class SearchConfig:
    threshold: float = 0.5
    limit: int = 10
    similar_threshold: float = 0.3


@dataclass(slots=True)
class AppConfig:
    notes_dir: Path | None = None
    data_dir: Path | None = None
    model_name: str = DEFAULT_MODEL
    chunking: ChunkingOptions = field(default_factory=ChunkingOptions)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    log_level: str = "ERROR"

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()
        self.log_level = self.log_level.upper()

    def resolve_data_dir(self, base_dir: Path | None = None) -> Path:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()
        if Path(self.data_dir).is_absolute() or base_dir is None:
            return Path(self.data_dir)
        return base_dir / self.data_dir

    def cache_dir(self, base_dir: Path | None = None) -> Path:
        return self.resolve_data_dir(base_dir) / "cache"

    @property
    def logging_level(self) -> int:
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.ERROR
