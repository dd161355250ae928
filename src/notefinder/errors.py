"""Exceptions raised by the indexing engine."""

from __future__ import annotations

from notefinder.messages import NO_EMBEDDING_PROVIDER


class NoteFinderError(Exception):
    """Base class for NoteFinder errors."""


class ProviderUnavailableError(NoteFinderError):
    """No embedding provider is configured or initialized."""

    def __init__(self, message: str = NO_EMBEDDING_PROVIDER) -> None:
        super().__init__(message)


class BelowMinimumWordCountError(NoteFinderError):
    """A note is too short to be indexed."""

    def __init__(self, word_count: int, minimum: int) -> None:
        self.word_count = word_count
        self.minimum = minimum
        super().__init__(f"File has only {word_count} words (minimum: {minimum}).")


class EmbeddingFailedError(NoteFinderError):
    """On-demand processing did not produce any embeddings."""
