"""Tests for EmbeddingProcessor."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from conftest import Engine, write_note
from notefinder import messages
from notefinder.embedding.provider import EmbeddingContext
from notefinder.errors import BelowMinimumWordCountError, ProviderUnavailableError
from notefinder.index.processor import ProcessingSummary
from notefinder.ingestion.notes import NoteHandle


class TestProcessingSummary:
    """Test ProcessingSummary tracking."""

    def test_increment(self) -> None:
        summary = ProcessingSummary()

        summary.increment("new", "a.md")
        summary.increment("cached", "b.md")
        summary.increment("skipped", "c.md")
        summary.increment("unknown_status", "d.md")

        assert (summary.new, summary.cached, summary.skipped, summary.failed) == (1, 1, 1, 1)
        assert summary.processed_files == ["a.md", "b.md", "c.md", "d.md"]

    def test_merge(self) -> None:
        total = ProcessingSummary(new=1)
        total.merge(ProcessingSummary(new=2, failed=1, processed_files=["x.md"]))

        assert total.new == 3
        assert total.failed == 1
        assert total.processed_files == ["x.md"]


class TestProcessFile:
    """Test single-note processing."""

    @pytest.mark.asyncio
    async def test_idempotent(self, engine: Engine) -> None:
        """A second call on unchanged content does no embedding work."""
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        doc = NoteHandle("a.md")

        assert await engine.processor.process_file(doc) is True
        calls = len(engine.provider.calls)
        assert await engine.processor.process_file(doc) is False
        assert len(engine.provider.calls) == calls

    @pytest.mark.asyncio
    async def test_uses_passage_context(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        await engine.processor.process_file(NoteHandle("a.md"))

        assert engine.provider.calls[-1][1] == EmbeddingContext.PASSAGE

    @pytest.mark.asyncio
    async def test_changed_content_is_reembedded(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        doc = NoteHandle("a.md")
        await engine.processor.process_file(doc)

        write_note(engine.notes_dir, "a.md", "cooking pasta at home tonight")

        assert await engine.processor.process_file(doc) is True
        entry = engine.cache.get_all()["a.md"]
        assert entry.chunks[0].vector == [0.0, 1.0, 0.0]

    @pytest.mark.asyncio
    async def test_stores_metadata(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "work/a.md", "python scripting tips #dev")

        await engine.processor.process_file(NoteHandle("work/a.md"))

        metadata = engine.cache.get_all()["work/a.md"].metadata
        assert metadata.folder == "work"
        assert metadata.tags == ["#dev"]

    @pytest.mark.asyncio
    async def test_frontmatter_change_is_reembedded(self, engine: Engine) -> None:
        """Editing only the frontmatter tags refreshes the cached metadata."""
        await engine.start()
        write_note(engine.notes_dir, "a.md", "---\ntags: [old]\n---\npython scripting tips and tricks")
        doc = NoteHandle("a.md")
        await engine.processor.process_file(doc)

        write_note(engine.notes_dir, "a.md", "---\ntags: [new]\n---\npython scripting tips and tricks")

        assert await engine.processor.process_file(doc) is True
        results = await engine.search.search("python", tags=["#new"], threshold=0.0)
        assert [r.path for r in results] == ["a.md"]
        assert await engine.search.search("python", tags=["#old"], threshold=0.0) == []

    @pytest.mark.asyncio
    async def test_below_minimum(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "short.md", "too short")

        with pytest.raises(BelowMinimumWordCountError, match="only 2 words"):
            await engine.processor.process_file(NoteHandle("short.md"))

    @pytest.mark.asyncio
    async def test_below_minimum_override(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "short.md", "too short")

        assert await engine.processor.process_file(NoteHandle("short.md"), skip_min_word_check=True)

    @pytest.mark.asyncio
    async def test_without_provider(self, engine: Engine) -> None:
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        with pytest.raises(ProviderUnavailableError):
            await engine.processor.process_file(NoteHandle("a.md"))

    @pytest.mark.asyncio
    async def test_updates_stats(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        await engine.processor.process_file(NoteHandle("a.md"))

        assert engine.processor.stats.samples == 1
        assert engine.processor.stats.avg_word_count == 5


class TestProcessVault:
    """Test full passes over the notes folder."""

    @pytest.mark.asyncio
    async def test_summary(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        write_note(engine.notes_dir, "b.md", "cooking pasta at home tonight")
        write_note(engine.notes_dir, "c.md", "hi")

        summary = await engine.processor.process_vault()

        assert (summary.new, summary.cached, summary.skipped, summary.failed) == (2, 0, 1, 0)
        assert engine.cache.get_stats().count == 2
        assert messages.processing_files(2, 1) in engine.notifications
        assert engine.cache.cache_file.exists()

    @pytest.mark.asyncio
    async def test_second_pass_uses_cache(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        await engine.processor.process_vault()

        summary = await engine.processor.process_vault(show_progress=False)

        assert (summary.new, summary.cached) == (0, 1)

    @pytest.mark.asyncio
    async def test_saves_once_per_batch(self, engine: Engine) -> None:
        await engine.start()
        for i in range(5):
            write_note(engine.notes_dir, f"n{i}.md", f"python note number {i} here")

        with patch.object(engine.cache, "save", wraps=engine.cache.save) as save:
            await engine.processor.process_vault()

        # batch_size 2 over 5 notes
        assert save.call_count == 3

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, engine: Engine) -> None:
        """An unreadable note is counted and the pass continues."""
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        (engine.notes_dir / "broken.md").write_bytes(b"\xff\xfe not utf8 at all")

        summary = await engine.processor.process_vault()

        assert summary.failed == 1
        assert summary.new == 1
        assert engine.cache.get_paths() == ["a.md"]

    @pytest.mark.asyncio
    async def test_already_processing(self, engine: Engine) -> None:
        await engine.start()
        engine.processor.queue.set_processing(True)

        assert await engine.processor.process_vault() is None
        assert messages.ALREADY_PROCESSING_VAULT in engine.notifications

    @pytest.mark.asyncio
    async def test_without_provider(self, engine: Engine) -> None:
        engine.cache.initialize()

        with pytest.raises(ProviderUnavailableError):
            await engine.processor.process_vault()
        assert not engine.processor.is_currently_processing()

    @pytest.mark.asyncio
    async def test_flag_cleared_after_pass(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        await engine.processor.process_vault()

        assert not engine.processor.is_currently_processing()

    @pytest.mark.asyncio
    async def test_queued_notes_drain_after_pass(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        engine.processor.queue.add(NoteHandle("late.md"))
        write_note(engine.notes_dir, "late.md", "garden tomatoes need sun daily")

        await engine.processor.process_vault()
        task = engine.processor.drain_task

        assert task is not None
        await task
        assert engine.processor.queue_size() == 0


class TestBatchAndCacheMaintenance:
    """Test batch processing and cache maintenance helpers."""

    @pytest.mark.asyncio
    async def test_process_batch(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        write_note(engine.notes_dir, "b.md", "no")

        summary = await engine.processor.process_batch([NoteHandle("a.md"), NoteHandle("b.md")])

        assert (summary.new, summary.failed) == (1, 1)
        assert not engine.cache.is_dirty
        assert messages.processing_complete(1, 0) in engine.notifications

    @pytest.mark.asyncio
    async def test_invalidate(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        doc = NoteHandle("a.md")
        await engine.processor.process_file(doc)

        engine.processor.invalidate(doc)

        assert engine.cache.get_paths() == []

    @pytest.mark.asyncio
    async def test_prune_missing(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")
        write_note(engine.notes_dir, "b.md", "cooking pasta at home tonight")
        await engine.processor.process_vault()

        (engine.notes_dir / "a.md").unlink()

        assert engine.processor.prune_missing() == 1
        assert engine.cache.get_paths() == ["b.md"]


class TestQueue:
    """Test incremental processing through the queue."""

    @pytest.mark.asyncio
    async def test_queue_file_schedules_drain(self, engine: Engine) -> None:
        await engine.start()
        write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        engine.processor.queue_file(NoteHandle("a.md"))
        summary = await engine.processor.drain_task

        assert summary.new == 1
        assert engine.cache.get("a.md", engine.cache.compute_hash(
            engine.source.read_raw(NoteHandle("a.md"))
        ))

    @pytest.mark.asyncio
    async def test_drain_in_batches(self, engine: Engine) -> None:
        await engine.start()
        for i in range(5):
            write_note(engine.notes_dir, f"n{i}.md", f"python note number {i} here")
            engine.processor.queue.add(NoteHandle(f"n{i}.md"))

        with patch.object(engine.cache, "save", wraps=engine.cache.save) as save:
            summary = await engine.processor.drain_queue()

        assert summary.new == 5
        assert save.call_count == 3
        assert not engine.processor.is_currently_processing()

    @pytest.mark.asyncio
    async def test_no_drain_while_processing(self, engine: Engine) -> None:
        """The vault pass and the queue drain share one flag."""
        await engine.start()
        engine.processor.queue.set_processing(True)

        engine.processor.queue_file(NoteHandle("a.md"))
        summary = await engine.processor.drain_queue()

        assert engine.processor.drain_task is None
        assert summary.new == 0
        assert engine.processor.queue_size() == 1

    def test_schedule_without_loop(self, engine: Engine) -> None:
        engine.processor.queue_file(NoteHandle("a.md"))

        assert engine.processor.drain_task is None
        assert engine.processor.queue_size() == 1

    @pytest.mark.asyncio
    async def test_check_and_queue_modified(self, engine: Engine) -> None:
        await engine.start()
        path = write_note(engine.notes_dir, "a.md", "python scripting tips and tricks")

        assert engine.processor.check_and_queue_modified() == []

        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        modified = engine.processor.check_and_queue_modified()

        assert modified == [NoteHandle("a.md")]
        await engine.processor.drain_task
        assert engine.cache.get_paths() == ["a.md"]
