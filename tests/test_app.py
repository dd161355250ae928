"""Tests for the NoteFinder host."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from conftest import FakeProvider, write_note
from notefinder import messages
from notefinder.app import NoteFinder, make_logger
from notefinder.config import AppConfig, ProcessingConfig
from notefinder.embedding.provider import ProviderType


@pytest.fixture
def config(tmp_path: Path, notes_dir: Path) -> AppConfig:
    return AppConfig(
        notes_dir=notes_dir,
        data_dir=tmp_path / "data",
        model_name="fake-model",
        processing=ProcessingConfig(min_word_count=3, queue_delay=0),
    )


def _finder(config: AppConfig, provider: FakeProvider, notifications: list) -> NoteFinder:
    return NoteFinder(
        config,
        provider_factories={ProviderType.SENTENCE_TRANSFORMERS: lambda: provider},
        notify=notifications.append,
    )


class TestMakeLogger:
    """Test per-folder loggers."""

    def test_name_and_level(self, tmp_path: Path) -> None:
        logger = make_logger(AppConfig(notes_dir=tmp_path / "vault", log_level="debug"))

        assert logger.name.startswith("notefinder.vault.vault-")
        assert logger.level == logging.DEBUG

    def test_same_basename_gets_separate_loggers(self, tmp_path: Path) -> None:
        """Two folders both called notes keep their own logger and level."""
        first = make_logger(AppConfig(notes_dir=tmp_path / "a" / "notes", log_level="debug"))
        second = make_logger(AppConfig(notes_dir=tmp_path / "b" / "notes", log_level="warning"))

        assert first is not second
        assert first.level == logging.DEBUG
        assert second.level == logging.WARNING

    def test_same_folder_reuses_logger(self, tmp_path: Path) -> None:
        first = make_logger(AppConfig(notes_dir=tmp_path / "vault"))
        second = make_logger(AppConfig(notes_dir=tmp_path / "vault" / ".." / "vault"))

        assert first is second


class TestNoteFinder:
    """Test wiring and lifecycle."""

    def test_requires_notes_dir(self) -> None:
        with pytest.raises(ValueError):
            NoteFinder(AppConfig())

    def test_cache_location(self, config: AppConfig, fake_provider: FakeProvider) -> None:
        finder = _finder(config, fake_provider, [])

        assert finder.cache.cache_file == config.data_dir / "cache" / "fake-model" / "embeddings.json"

    @pytest.mark.asyncio
    async def test_index_and_search(self, config: AppConfig, fake_provider: FakeProvider) -> None:
        write_note(config.notes_dir, "a.md", "python scripting tips and tricks")
        write_note(config.notes_dir, "b.md", "cooking pasta at home tonight")

        async with _finder(config, fake_provider, []) as finder:
            summary = await finder.processor.process_vault()
            results = await finder.search.search("python")

        assert summary.new == 2
        assert [r.path for r in results] == ["a.md"]
        assert not fake_provider.initialized

    @pytest.mark.asyncio
    async def test_close_persists_cache(self, config: AppConfig, fake_provider: FakeProvider) -> None:
        write_note(config.notes_dir, "a.md", "python scripting tips and tricks")
        finder = _finder(config, fake_provider, [])
        await finder.open()
        await finder.processor.process_file(finder.source.list_documents()[0])

        await finder.close()

        assert finder.cache.cache_file.exists()
        assert not finder.cache.is_dirty

    @pytest.mark.asyncio
    async def test_switch_model(self, config: AppConfig, fake_provider: FakeProvider) -> None:
        notifications: list = []
        async with _finder(config, fake_provider, notifications) as finder:
            assert await finder.switch_model("other-model") is True

            assert finder.cache.model_name == "other-model"
            assert finder.config.model_name == "other-model"
        assert messages.model_switched("other-model") in notifications

    @pytest.mark.asyncio
    async def test_switch_model_failure(self, config: AppConfig, fake_provider: FakeProvider) -> None:
        notifications: list = []
        fake_provider.switch_model = AsyncMock(side_effect=RuntimeError("boom"))
        async with _finder(config, fake_provider, notifications) as finder:
            assert await finder.switch_model("other-model") is False

            assert finder.cache.model_name == "fake-model"
        assert messages.provider_switch_failed("other-model") in notifications

    @pytest.mark.asyncio
    async def test_periodic_check_queues_modified(
        self, config: AppConfig, fake_provider: FakeProvider
    ) -> None:
        path = write_note(config.notes_dir, "a.md", "python scripting tips and tricks")

        async with _finder(config, fake_provider, []) as finder:
            task = finder.start_periodic_check(interval=0.01)
            await asyncio.sleep(0.02)
            stat = path.stat()
            os.utime(path, (stat.st_atime, stat.st_mtime + 10))

            for _ in range(100):
                await asyncio.sleep(0.01)
                if "a.md" in finder.cache.get_paths():
                    break

            assert "a.md" in finder.cache.get_paths()
            await finder.stop_periodic_check()
            assert task.cancelled()
