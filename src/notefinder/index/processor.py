"""Note embedding pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from notefinder import messages
from notefinder.chunking.chunker import NoteChunker
from notefinder.config import ProcessingConfig
from notefinder.embedding.manager import ProviderManager
from notefinder.embedding.provider import EmbeddingContext, EmbeddingProvider
from notefinder.errors import BelowMinimumWordCountError, ProviderUnavailableError
from notefinder.index.batching import BatchConfig, BatchProcessor, ProcessingStats
from notefinder.index.cache import EmbeddingCache
from notefinder.index.queue import ProcessingQueue
from notefinder.ingestion.notes import DocumentSource, NoteHandle
from notefinder.models import ChunkEmbedding
from notefinder.utils.text import count_words

LOGGER = logging.getLogger(__name__)

Notifier = Callable[[str], None]


@dataclass(slots=True)
class ProcessingSummary:
    new: int = 0
    cached: int = 0
    skipped: int = 0
    failed: int = 0
    processed_files: List[str] = field(default_factory=list)

    def increment(self, status: str, path: str) -> None:
        if status == "new":
            self.new += 1
        elif status == "cached":
            self.cached += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)

    def merge(self, other: "ProcessingSummary") -> None:
        self.new += other.new
        self.cached += other.cached
        self.skipped += other.skipped
        self.failed += other.failed
        self.processed_files.extend(other.processed_files)


class EmbeddingProcessor:
    """Coordinates chunking, embedding and caching of notes.

    Full-vault passes and the incremental queue drain share the queue's
    processing flag, so at most one of them writes the cache at a time.
    """

    def __init__(
        self,
        providers: ProviderManager,
        cache: EmbeddingCache,
        source: DocumentSource,
        *,
        chunker: NoteChunker | None = None,
        config: ProcessingConfig | None = None,
        notify: Notifier | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.providers = providers
        self.cache = cache
        self.source = source
        self.config = config or ProcessingConfig()
        self.logger = logger or LOGGER
        self.chunker = chunker or NoteChunker(logger=self.logger)
        self.notify: Notifier = notify or self.logger.info
        self.stats = ProcessingStats()
        self.batch_processor = BatchProcessor(
            BatchConfig(
                batch_size=self.config.batch_size,
                adaptive_batching=self.config.adaptive_batching,
            ),
            logger=self.logger,
        )
        self.queue: ProcessingQueue[NoteHandle] = ProcessingQueue(
            source.get_modified_time, logger=self.logger
        )
        self._drain_task: asyncio.Task[ProcessingSummary] | None = None

    def _provider(self) -> EmbeddingProvider:
        provider = self.providers.get_provider()
        if provider is None:
            raise ProviderUnavailableError()
        return provider

    async def process_file(self, doc: NoteHandle, skip_min_word_check: bool = False) -> bool:
        """Embed one note.

        Returns:
            True when new embeddings were generated, False when the cache
            already held embeddings for the current content.
        """
        provider = self._provider()

        # Hash the whole file so frontmatter edits refresh the stored metadata
        content_hash = self.cache.compute_hash(self.source.read_raw(doc))
        if self.cache.get(doc.path, content_hash) is not None:
            return False

        content = self.source.read_text(doc)
        word_count = count_words(content)
        minimum = self.config.min_word_count
        if not skip_min_word_check and word_count < minimum:
            self.logger.debug("Skipping %s: too short (%d < %d words)", doc.path, word_count, minimum)
            raise BelowMinimumWordCountError(word_count, minimum)

        chunks = self.chunker.chunk(content)
        self.logger.debug("Created %d chunks for %s", len(chunks), doc.path)

        started = time.monotonic()
        embeddings: List[ChunkEmbedding] = []
        for chunk in chunks:
            vector = await provider.embed(chunk.content, EmbeddingContext.PASSAGE)
            embeddings.append(ChunkEmbedding(chunk_id=chunk.chunk_id, vector=list(vector), chunk=chunk))
        elapsed = time.monotonic() - started

        self.stats.update(elapsed, word_count)
        metadata = self.source.extract_metadata(doc)
        self.cache.set(doc.path, embeddings, content_hash, metadata)

        self.logger.debug("Processed %s: %d chunks in %.3fs", doc.path, len(chunks), elapsed)
        return True

    async def _process_items(self, items: Sequence[NoteHandle], summary: ProcessingSummary) -> None:
        for doc in items:
            try:
                status = "new" if await self.process_file(doc) else "cached"
                summary.increment(status, doc.path)
            except Exception as e:
                self.logger.error(f"Failed to process {doc.path}: {e}")
                summary.increment("failed", doc.path)

    def _filter_by_word_count(self, docs: Sequence[NoteHandle]) -> List[NoteHandle]:
        minimum = self.config.min_word_count
        if minimum <= 0:
            return list(docs)

        kept: List[NoteHandle] = []
        for doc in docs:
            try:
                if count_words(self.source.read_text(doc)) >= minimum:
                    kept.append(doc)
            except (OSError, UnicodeDecodeError):
                # unreadable notes stay in so the failure is counted per document
                kept.append(doc)
        return kept

    async def process_vault(self, show_progress: bool = True) -> ProcessingSummary | None:
        """Process every note in the source, batch by batch.

        Returns ``None`` without doing anything when another pass or a queue
        drain is running.
        """
        if self.queue.is_currently_processing():
            self.notify(messages.ALREADY_PROCESSING_VAULT)
            return None

        self._provider()

        self.queue.set_processing(True)
        try:
            all_docs = self.source.list_documents()
            docs = self._filter_by_word_count(all_docs)
            summary = ProcessingSummary(skipped=len(all_docs) - len(docs))

            if show_progress:
                self.notify(messages.processing_files(len(docs), summary.skipped))

            started = time.monotonic()
            avg_time = (
                self.stats.avg_processing_time if self.stats.has_enough_samples() else None
            )
            batches = self.batch_processor.create_batches(docs, avg_time)

            for index, batch in enumerate(batches):
                batch_started = time.monotonic()
                await self._process_items(batch, summary)
                self.cache.save()

                done = summary.new + summary.cached + summary.failed
                if show_progress and (index % 5 == 0 or index == len(batches) - 1):
                    eta = self.batch_processor.estimate_time_remaining(started, done, len(docs))
                    self.notify(messages.progress(done, len(docs), summary.new, summary.cached, eta))

                self.logger.debug(
                    "Batch %d/%d: %d files in %.2fs",
                    index + 1,
                    len(batches),
                    len(batch),
                    time.monotonic() - batch_started,
                )
                await asyncio.sleep(0)

            message = messages.vault_processed(
                time.monotonic() - started,
                summary.new,
                summary.cached,
                summary.skipped,
                summary.failed,
                self.cache.get_stats().chunk_count,
            )
            self.notify(message)
            self.logger.info(message)
            return summary
        finally:
            self.queue.set_processing(False)
            self._schedule_drain()

    async def process_batch(self, items: Sequence[NoteHandle]) -> ProcessingSummary:
        """Process ``items`` with per-note isolation and a single cache save."""
        self._provider()

        summary = ProcessingSummary()
        await self._process_items(items, summary)
        self.cache.save()
        self.notify(messages.processing_complete(summary.new, summary.cached))
        return summary

    def invalidate(self, doc: NoteHandle) -> None:
        self.cache.remove(doc.path)

    def prune_missing(self) -> int:
        """Remove cache entries whose notes no longer exist."""
        missing = [path for path in self.cache.get_paths() if not self.source.exists(path)]
        for path in missing:
            self.cache.remove(path)
        if missing:
            self.logger.info("Removed %d deleted notes from the cache", len(missing))
        return len(missing)

    def queue_file(self, doc: NoteHandle) -> None:
        self.queue.add(doc)
        self._schedule_drain()

    def check_and_queue_modified(self) -> List[NoteHandle]:
        modified = self.queue.check_for_modifications(self.source.list_documents())
        for doc in modified:
            self.queue.add(doc)
        if modified:
            self.logger.info("Periodic check: found %d modified files", len(modified))
            self._schedule_drain()
        return modified

    @property
    def drain_task(self) -> asyncio.Task[ProcessingSummary] | None:
        return self._drain_task

    def _schedule_drain(self) -> None:
        if self.queue.is_empty() or self.queue.is_currently_processing():
            return
        if self._drain_task is not None and not self._drain_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop, %d notes wait in queue", self.queue.size())
            return
        self._drain_task = loop.create_task(self.drain_queue())
        self._drain_task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task[ProcessingSummary]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Queue processing failed: %s", exc)

    async def drain_queue(self) -> ProcessingSummary:
        """Process queued notes batch by batch until the queue is empty."""
        total = ProcessingSummary()
        if self.queue.is_currently_processing():
            return total

        self.queue.set_processing(True)
        try:
            while not self.queue.is_empty():
                batch = self.queue.remove(self.config.batch_size)
                total.merge(await self.process_batch(batch))
                if not self.queue.is_empty():
                    await asyncio.sleep(self.config.queue_delay)
        finally:
            self.queue.set_processing(False)
        return total

    def is_currently_processing(self) -> bool:
        return self.queue.is_currently_processing()

    def queue_size(self) -> int:
        return self.queue.size()
