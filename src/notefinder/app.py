"""Wire provider, cache, processor and search together for one notes folder."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Callable, Dict

from notefinder import messages
from notefinder.chunking.chunker import NoteChunker
from notefinder.config import AppConfig
from notefinder.embedding.encoder import EmbeddingConfig, SentenceTransformerProvider
from notefinder.embedding.manager import ProviderFactory, ProviderManager
from notefinder.embedding.provider import ProviderType
from notefinder.index.cache import EmbeddingCache
from notefinder.index.processor import EmbeddingProcessor
from notefinder.index.search import SemanticSearch
from notefinder.ingestion.notes import FolderDocumentSource
from notefinder.utils.text import compute_hash


def make_logger(config: AppConfig) -> logging.Logger:
    """Return a logger dedicated to one notes folder, at the configured level.

    The name carries a digest of the resolved folder path, so folders that
    share a basename still get separate loggers.
    """
    folder = Path(config.notes_dir or "notes").expanduser().resolve()
    name = folder.name.replace(".", "_") or "notes"
    logger = logging.getLogger(f"notefinder.vault.{name}-{compute_hash(folder.as_posix())[:8]}")
    logger.setLevel(config.logging_level)
    return logger


class NoteFinder:
    """Host for the indexing engine.

    Usage::

        async with NoteFinder(AppConfig(notes_dir=Path("~/notes"))) as finder:
            await finder.processor.process_vault()
            results = await finder.search.search("meeting notes")
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        provider_factories: Dict[ProviderType, ProviderFactory] | None = None,
        notify: Callable[[str], None] | None = None,
        base_dir: Path | None = None,
    ) -> None:
        if config.notes_dir is None:
            raise ValueError("notes_dir is required")

        self.config = config
        self.logger = make_logger(config)
        self.notify = notify or self.logger.info
        self.source = FolderDocumentSource(Path(config.notes_dir).expanduser(), logger=self.logger)

        factories = provider_factories or {
            ProviderType.SENTENCE_TRANSFORMERS: lambda: SentenceTransformerProvider(
                EmbeddingConfig(model_name=config.model_name), logger=self.logger
            )
        }
        self.providers = ProviderManager(factories, logger=self.logger)
        self.cache = EmbeddingCache(config.cache_dir(base_dir), config.model_name, logger=self.logger)
        self.processor = EmbeddingProcessor(
            self.providers,
            self.cache,
            self.source,
            chunker=NoteChunker(config.chunking, logger=self.logger),
            config=config.processing,
            notify=self.notify,
            logger=self.logger,
        )
        self.search = SemanticSearch(
            self.providers, self.cache, self.source, self.processor, logger=self.logger
        )
        self._periodic_task: asyncio.Task[None] | None = None

    async def open(self) -> None:
        self.cache.initialize()
        await self.providers.initialize()

    async def close(self) -> None:
        await self.stop_periodic_check()
        self.cache.save()
        await self.providers.dispose()

    async def __aenter__(self) -> "NoteFinder":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def switch_model(self, model_name: str) -> bool:
        """Swap the embedding model; each model keeps its own cache."""
        if not await self.providers.switch_model(model_name):
            self.notify(messages.provider_switch_failed(model_name))
            return False
        self.cache.switch_model(model_name)
        self.config.model_name = model_name
        self.notify(messages.model_switched(model_name))
        return True

    async def run_periodic_check(self, interval: float | None = None) -> None:
        """Queue modified notes every ``interval`` seconds until cancelled."""
        seconds = interval if interval is not None else self.config.processing.check_interval_minutes * 60
        self.logger.info("Started periodic check every %.0f seconds", seconds)
        # first pass only records modification times
        self.processor.check_and_queue_modified()
        while True:
            await asyncio.sleep(seconds)
            self.processor.check_and_queue_modified()

    def start_periodic_check(self, interval: float | None = None) -> asyncio.Task[None]:
        if self._periodic_task is None or self._periodic_task.done():
            self._periodic_task = asyncio.get_running_loop().create_task(
                self.run_periodic_check(interval)
            )
        return self._periodic_task

    async def stop_periodic_check(self) -> None:
        task, self._periodic_task = self._periodic_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
