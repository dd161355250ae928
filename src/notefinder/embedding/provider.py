"""Embedding provider interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Sequence


class EmbeddingContext(str, Enum):
    """Whether text is a search query or a stored passage."""

    QUERY = "query"
    PASSAGE = "passage"


class ProviderType(str, Enum):
    SENTENCE_TRANSFORMERS = "sentence-transformers"


class EmbeddingProvider(ABC):
    """Common interface for all embedding providers."""

    name: str = "provider"

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True when the provider can produce embeddings."""

    @abstractmethod
    async def initialize(self) -> None:
        """Load models or connect to services."""

    @abstractmethod
    async def embed(
        self, text: str, context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[float]:
        """Embed a single text."""

    @abstractmethod
    async def embed_batch(
        self, texts: Sequence[str], context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[List[float]]:
        """Embed several texts at once."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Length of the vectors this provider returns."""

    @abstractmethod
    async def dispose(self) -> None:
        """Release resources."""


class ModelSwitchingProvider(EmbeddingProvider):
    """Provider that can swap its underlying model at runtime."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Identifier of the active model."""

    @abstractmethod
    async def switch_model(self, model_name: str) -> None:
        """Load ``model_name`` and make it active."""


def supports_model_switching(provider: EmbeddingProvider | None) -> bool:
    return isinstance(provider, ModelSwitchingProvider)
