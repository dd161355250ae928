"""Embedding model management."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import List, Literal, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from notefinder.embedding.provider import EmbeddingContext, ModelSwitchingProvider

DEFAULT_MODEL = "intfloat/multilingual-e5-small"
SUPPORTED_MODELS = (
    "intfloat/multilingual-e5-small",
    "sentence-transformers/all-MiniLM-L6-v2",
)

LOGGER = logging.getLogger(__name__)


def uses_instruction_prefix(model_name: str) -> bool:
    """E5 models expect ``query:`` / ``passage:`` prefixes."""
    return "e5" in model_name.lower().rsplit("/", 1)[-1]


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    onnx_model_file: str | None = None
    device: str | None = None


class SentenceTransformerProvider(ModelSwitchingProvider):
    """Thin wrapper around `SentenceTransformer` for query and passage embeddings.

    The model is loaded lazily by :meth:`initialize` and runs in a worker
    thread so the event loop is never blocked by inference.
    """

    name = "sentence-transformers"

    def __init__(
        self, config: EmbeddingConfig | None = None, *, logger: logging.Logger | None = None
    ) -> None:
        self.config = config or EmbeddingConfig()
        self.logger = logger or LOGGER
        self._model: SentenceTransformer | None = None
        self.dimension = 0

    @property
    def model_name(self) -> str:
        return self.config.model_name

    async def is_available(self) -> bool:
        return self._model is not None

    async def initialize(self) -> None:
        if self._model is not None:
            return
        self._model = await asyncio.to_thread(self._load_with_fallback)
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        self.logger.info(
            "Loaded %s (backend: %s, dimension: %d)",
            self.config.model_name,
            self.config.backend,
            self.dimension,
        )

    def _load_with_fallback(self) -> SentenceTransformer:
        try:
            return self._load_model()
        except Exception as e:
            if self.config.backend == "torch":
                raise
            self.logger.warning(
                f"Failed to load model with backend '{self.config.backend}': {e}. "
                "Falling back to PyTorch."
            )
            self.config.backend = "torch"
            self.config.onnx_model_file = None
            return self._load_model()

    def _load_model(self) -> SentenceTransformer:
        """Load the SentenceTransformer model with appropriate backend settings."""
        model_kwargs = {}
        if self.config.backend == "onnx" and self.config.onnx_model_file:
            model_kwargs["file_name"] = self.config.onnx_model_file

        return SentenceTransformer(
            self.config.model_name,
            backend=self.config.backend,
            device=self.config.device,
            model_kwargs=model_kwargs if model_kwargs else None,
        )

    def _prepare(self, texts: Sequence[str], context: EmbeddingContext) -> List[str]:
        if not uses_instruction_prefix(self.config.model_name):
            return list(texts)
        prefix = "query: " if context == EmbeddingContext.QUERY else "passage: "
        return [prefix + text for text in texts]

    def encode(self, texts: Sequence[str], context: EmbeddingContext) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        if self._model is None:
            raise RuntimeError("Embedding model is not initialized")
        embeddings = self._model.encode(
            self._prepare(texts, context),
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    async def embed(
        self, text: str, context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[float]:
        vectors = await self.embed_batch([text], context)
        return vectors[0]

    async def embed_batch(
        self, texts: Sequence[str], context: EmbeddingContext = EmbeddingContext.PASSAGE
    ) -> List[List[float]]:
        if not texts:
            return []
        embeddings = await asyncio.to_thread(self.encode, list(texts), context)
        return embeddings.tolist()

    def get_dimension(self) -> int:
        return self.dimension

    async def dispose(self) -> None:
        self._model = None

    async def switch_model(self, model_name: str) -> None:
        if model_name == self.config.model_name and self._model is not None:
            return
        self.config = dataclasses.replace(self.config, model_name=model_name)
        self._model = None
        self.dimension = 0
        await self.initialize()
