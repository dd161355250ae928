"""Shared fixtures: a deterministic embedding provider and a wired engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pytest

from notefinder.chunking.chunker import ChunkingOptions, NoteChunker
from notefinder.config import ProcessingConfig
from notefinder.embedding.manager import ProviderManager
from notefinder.embedding.provider import EmbeddingContext, ModelSwitchingProvider, ProviderType
from notefinder.index.cache import EmbeddingCache
from notefinder.index.processor import EmbeddingProcessor
from notefinder.index.search import SemanticSearch
from notefinder.ingestion.notes import FolderDocumentSource


class FakeProvider(ModelSwitchingProvider):
    """Returns the vector of the first keyword found in the text."""

    name = "fake"

    def __init__(self, vectors: Dict[str, List[float]] | None = None, dimension: int = 3) -> None:
        self.vectors = vectors or {}
        self.dimension = dimension
        self.initialized = False
        self.calls: List[Tuple[str, EmbeddingContext]] = []
        self._model_name = "fake-model"

    @property
    def model_name(self) -> str:
        return self._model_name

    async def is_available(self) -> bool:
        return self.initialized

    async def initialize(self) -> None:
        self.initialized = True

    async def embed(
        self, text: str, context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[float]:
        self.calls.append((text, context))
        for keyword, vector in self.vectors.items():
            if keyword in text:
                return list(vector)
        return [1.0] + [0.0] * (self.dimension - 1)

    async def embed_batch(
        self, texts: Sequence[str], context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[List[float]]:
        return [await self.embed(text, context) for text in texts]

    def get_dimension(self) -> int:
        return self.dimension

    async def dispose(self) -> None:
        self.initialized = False

    async def switch_model(self, model_name: str) -> None:
        self._model_name = model_name


def write_note(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def words(count: int, word: str = "word") -> str:
    return " ".join([word] * count)


@dataclass
class Engine:
    notes_dir: Path
    provider: FakeProvider
    providers: ProviderManager
    cache: EmbeddingCache
    source: FolderDocumentSource
    processor: EmbeddingProcessor
    search: SemanticSearch
    notifications: List[str] = field(default_factory=list)

    async def start(self) -> "Engine":
        self.cache.initialize()
        await self.providers.initialize()
        return self


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider(
        {
            "python": [1.0, 0.0, 0.0],
            "cooking": [0.0, 1.0, 0.0],
            "garden": [0.0, 0.0, 1.0],
        }
    )


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    root = tmp_path / "notes"
    root.mkdir()
    return root


@pytest.fixture
def engine(tmp_path: Path, notes_dir: Path, fake_provider: FakeProvider) -> Engine:
    """Engine over ``notes_dir``; call ``await engine.start()`` before use."""
    notifications: List[str] = []
    providers = ProviderManager({ProviderType.SENTENCE_TRANSFORMERS: lambda: fake_provider})
    cache = EmbeddingCache(tmp_path / "cache", "fake-model")
    source = FolderDocumentSource(notes_dir)
    processor = EmbeddingProcessor(
        providers,
        cache,
        source,
        chunker=NoteChunker(ChunkingOptions(min_words=100)),
        config=ProcessingConfig(batch_size=2, min_word_count=3, adaptive_batching=False, queue_delay=0),
        notify=notifications.append,
    )
    search = SemanticSearch(providers, cache, source, processor)
    return Engine(
        notes_dir=notes_dir,
        provider=fake_provider,
        providers=providers,
        cache=cache,
        source=source,
        processor=processor,
        search=search,
        notifications=notifications,
    )
