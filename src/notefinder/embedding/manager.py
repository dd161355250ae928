"""Embedding provider lifecycle."""

from __future__ import annotations

import logging
from typing import Callable, Dict

from notefinder.embedding.provider import (
    EmbeddingProvider,
    ProviderType,
    supports_model_switching,
)

LOGGER = logging.getLogger(__name__)

ProviderFactory = Callable[[], EmbeddingProvider]


class ProviderManager:
    """Creates, initializes and swaps embedding providers.

    ``get_provider`` returns ``None`` until a provider initialized
    successfully; callers turn that into :class:`ProviderUnavailableError`.
    """

    def __init__(
        self,
        factories: Dict[ProviderType, ProviderFactory],
        *,
        default_type: ProviderType = ProviderType.SENTENCE_TRANSFORMERS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.factories = dict(factories)
        self.default_type = default_type
        self.logger = logger or LOGGER
        self._providers: Dict[ProviderType, EmbeddingProvider] = {}
        self._current: EmbeddingProvider | None = None

    async def initialize(self) -> None:
        provider = self._create(self.default_type)
        if provider is None:
            self.logger.error("No factory registered for %s provider", self.default_type.value)
            return

        if not await provider.is_available():
            self.logger.info("%s provider not yet available, initializing", provider.name)

        try:
            await provider.initialize()
        except Exception as exc:
            self.logger.error("Provider initialization failed: %s", exc)
            return

        self._providers[self.default_type] = provider
        self._current = provider
        self.logger.debug("%s provider initialized", provider.name)

    def _create(self, provider_type: ProviderType) -> EmbeddingProvider | None:
        factory = self.factories.get(provider_type)
        return factory() if factory else None

    def get_provider(self) -> EmbeddingProvider | None:
        return self._current

    async def switch_provider(self, provider_type: ProviderType) -> bool:
        provider = self._providers.get(provider_type)
        if provider is None:
            provider = self._create(provider_type)
            if provider is None:
                return False
            self._providers[provider_type] = provider

        if provider is self._current:
            return True

        try:
            await provider.initialize()
        except Exception as exc:
            self.logger.error("Failed to switch to %s provider: %s", provider_type.value, exc)
            return False

        if not await provider.is_available():
            return False

        if self._current is not None:
            await self._current.dispose()
        self._current = provider
        return True

    async def switch_model(self, model_name: str) -> bool:
        """Swap the active provider's model when it supports that."""
        provider = self._current
        if not supports_model_switching(provider):
            self.logger.warning("Active provider cannot switch models")
            return False

        try:
            await provider.switch_model(model_name)  # type: ignore[union-attr]
        except Exception as exc:
            self.logger.error("Failed to switch to model %s: %s", model_name, exc)
            return False
        return True

    async def dispose(self) -> None:
        for provider in self._providers.values():
            await provider.dispose()
        self._providers.clear()
        self._current = None
