"""Semantic search interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

import numpy as np

from notefinder.embedding.manager import ProviderManager
from notefinder.embedding.provider import EmbeddingContext
from notefinder.errors import EmbeddingFailedError, ProviderUnavailableError
from notefinder.index.cache import EmbeddingCache
from notefinder.index.processor import EmbeddingProcessor
from notefinder.ingestion.notes import DocumentSource, NoteHandle
from notefinder.models import CachedChunk, Chunk, NoteMetadata
from notefinder.utils.vector import cosine_similarities

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchResult:
    path: str
    chunk_id: str
    chunk: Chunk
    similarity: float
    metadata: NoteMetadata


@dataclass(slots=True)
class IndexStats:
    total_notes: int
    cached_notes: int
    total_chunks: int
    cache_size: int

    @property
    def coverage(self) -> float:
        if self.total_notes == 0:
            return 0.0
        return self.cached_notes / self.total_notes * 100


class SemanticSearch:
    """High-level API to rank cached chunks against a query."""

    def __init__(
        self,
        providers: ProviderManager,
        cache: EmbeddingCache,
        source: DocumentSource,
        processor: EmbeddingProcessor,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.providers = providers
        self.cache = cache
        self.source = source
        self.processor = processor
        self.logger = logger or LOGGER

    async def search(
        self,
        query: str,
        *,
        limit: int = 10,
        threshold: float = 0.5,
        folder: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> List[SearchResult]:
        normalized = query.strip()
        self.logger.debug('Query: "%s", threshold: %s, limit: %d', normalized, threshold, limit)

        provider = self.providers.get_provider()
        if provider is None:
            raise ProviderUnavailableError()

        query_vector = await provider.embed(normalized, EmbeddingContext.QUERY)

        rows = self.cache.get_all_chunks_flattened()
        self.logger.debug("Cached chunks: %d", len(rows))
        if not rows:
            self.logger.warning("No cached chunks found, process the vault first")
            return []

        wanted_tags = {tag if tag.startswith("#") else f"#{tag}" for tag in tags or ()}
        candidates = [
            row
            for row in rows
            if (not folder or row.path.startswith(folder))
            and (not wanted_tags or wanted_tags.intersection(row.metadata.tags))
        ]
        results = self._rank(query_vector, candidates, threshold, self._live_paths())

        if not results:
            self.logger.warning(
                "No results above threshold %s. Try lowering the threshold or processing more notes.",
                threshold,
            )
        return results[:limit]

    async def find_similar(
        self, doc: NoteHandle, *, limit: int = 10, threshold: float = 0.3
    ) -> List[SearchResult]:
        """Rank other notes against ``doc``'s first chunk."""
        content_hash = self.cache.compute_hash(self.source.read_raw(doc))
        chunks = self.cache.get(doc.path, content_hash)

        if not chunks:
            self.logger.debug('"%s" not in cache, processing now', doc.path)
            await self.processor.process_file(doc, skip_min_word_check=True)
            self.cache.save()
            chunks = self.cache.get(doc.path, content_hash)
            if not chunks:
                raise EmbeddingFailedError(
                    "Failed to generate embeddings. The provider may not be initialized."
                )

        rows = [row for row in self.cache.get_all_chunks_flattened() if row.path != doc.path]
        results = self._rank(chunks[0].vector, rows, threshold, self._live_paths())
        return results[:limit]

    def _live_paths(self) -> set[str]:
        return {doc.path for doc in self.source.list_documents()}

    def _rank(
        self,
        query_vector: Sequence[float],
        candidates: Sequence[CachedChunk],
        threshold: float,
        live_paths: Iterable[str],
    ) -> List[SearchResult]:
        if not candidates:
            return []

        live = set(live_paths)
        scores = cosine_similarities(
            query_vector, np.array([row.vector for row in candidates], dtype="float64")
        )

        results: List[SearchResult] = []
        for row, score in zip(candidates, scores):
            similarity = float(score)
            if similarity < threshold or row.path not in live:
                continue
            results.append(
                SearchResult(
                    path=row.path,
                    chunk_id=row.chunk_id,
                    chunk=row.chunk,
                    similarity=similarity,
                    metadata=row.metadata,
                )
            )

        # sorted() is stable, so equal scores keep scan order
        results = sorted(results, key=lambda result: result.similarity, reverse=True)
        for result in results[:20]:
            self.logger.debug("  %s > %s: %.2f%%", result.path, result.chunk_id, result.similarity * 100)
        return results

    def get_index_stats(self) -> IndexStats:
        stats = self.cache.get_stats()
        return IndexStats(
            total_notes=len(self.source.list_documents()),
            cached_notes=stats.count,
            total_chunks=stats.chunk_count,
            cache_size=stats.size,
        )
