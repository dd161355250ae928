"""Split notes into semantically coherent chunks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Set

from notefinder.chunking.parser import (
    TextBlock,
    build_heading_hierarchy,
    build_section_tree,
    paragraph_blocks,
    parse_headings,
    sentence_blocks,
)
from notefinder.models import Chunk, Heading, Section
from notefinder.utils.text import count_words, create_preview, slugify

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ChunkingOptions:
    max_words: int = 800
    min_words: int = 100
    split_at_headings: bool = True
    max_heading_level: int = 3
    overlap_words: int = 50


class _ChunkIds:
    """Hands out chunk ids that are unique within one note."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._counter = 0

    def sequential(self) -> str:
        while True:
            chunk_id = f"chunk-{self._counter}"
            self._counter += 1
            if chunk_id not in self._seen:
                self._seen.add(chunk_id)
                return chunk_id

    def named(self, base: str | None) -> str:
        if not base:
            return self.sequential()
        chunk_id = base
        suffix = 1
        while chunk_id in self._seen:
            chunk_id = f"{base}-{suffix}"
            suffix += 1
        self._seen.add(chunk_id)
        return chunk_id


class NoteChunker:
    """Cascade chunker: headings, then paragraphs, then sentences.

    ``chunk`` always returns at least one chunk, even for empty input.
    """

    def __init__(
        self, options: ChunkingOptions | None = None, *, logger: logging.Logger | None = None
    ) -> None:
        self.options = options or ChunkingOptions()
        self.logger = logger or LOGGER

    def chunk(self, content: str) -> List[Chunk]:
        lines = content.split("\n")
        word_count = count_words(content)
        self.logger.debug("Chunking note: %d words, %d lines", word_count, len(lines))

        if word_count < self.options.min_words:
            self.logger.debug("Note below minimum words, using single chunk")
            return [self._single_chunk(content, lines)]

        ids = _ChunkIds()

        if self.options.split_at_headings:
            headings = parse_headings(content)
            if any(h.level <= self.options.max_heading_level for h in headings):
                self.logger.debug("Found %d headings, using heading-based chunking", len(headings))
                chunks = self._chunk_by_headings(lines, headings, ids)
                if chunks:
                    return self._report(chunks)
                self.logger.debug("Headings carry no content, using single chunk")
                return [self._single_chunk(content, lines)]

        paragraphs = paragraph_blocks(lines)
        if len(paragraphs) >= 3:
            self.logger.debug("Found %d paragraphs, using paragraph-based chunking", len(paragraphs))
            return self._report(self._group_paragraphs(paragraphs, [], ids, None))

        sentences = sentence_blocks(content)
        if len(sentences) >= 3:
            self.logger.debug("Found %d sentences, using sentence-based chunking", len(sentences))
            return self._report(self._group_sentences(sentences, [], ids, None))

        self.logger.debug("No clear structure, using single chunk")
        return [self._single_chunk(content, lines)]

    def _single_chunk(self, content: str, lines: Sequence[str]) -> Chunk:
        return Chunk(
            chunk_id="chunk-0",
            content=content.strip(),
            headings=[],
            start_line=0,
            end_line=len(lines) - 1,
            word_count=count_words(content),
            preview=create_preview(content),
        )

    def _chunk_by_headings(
        self, lines: Sequence[str], headings: List[Heading], ids: _ChunkIds
    ) -> List[Chunk]:
        tree = build_section_tree(lines, headings, self.options.max_heading_level)
        chunks: List[Chunk] = []
        for section in tree.walk():
            chunks.extend(self._process_section(section, headings, ids))
        return chunks

    def _process_section(
        self, section: Section, headings: List[Heading], ids: _ChunkIds
    ) -> List[Chunk]:
        text = "\n".join(section.content_lines).strip()
        words = count_words(text)
        hierarchy = build_heading_hierarchy(headings, section.heading) if section.heading else []
        base_id = slugify(section.heading.text) if section.heading else None

        chunks: List[Chunk] = []
        if words > 0:
            if words <= self.options.max_words:
                chunks.append(
                    self._make_chunk(
                        text,
                        section.start_line,
                        section.end_line,
                        hierarchy,
                        ids.named(base_id),
                    )
                )
            else:
                self.logger.debug(
                    'Section "%s" too large (%d words), splitting',
                    section.heading.text if section.heading else "untitled",
                    words,
                )
                content_start = section.start_line + (1 if section.heading else 0)
                paragraphs = paragraph_blocks(section.content_lines, content_start)
                if len(paragraphs) > 1:
                    chunks.extend(self._group_paragraphs(paragraphs, hierarchy, ids, base_id))
                else:
                    sentences = sentence_blocks("\n".join(section.content_lines), content_start)
                    chunks.extend(self._group_sentences(sentences, hierarchy, ids, base_id))

        return chunks

    def _group_paragraphs(
        self,
        blocks: Sequence[TextBlock],
        hierarchy: List[str],
        ids: _ChunkIds,
        base_id: str | None,
    ) -> List[Chunk]:
        chunks: List[Chunk] = []
        current: List[TextBlock] = []
        current_words = 0

        def flush() -> None:
            chunks.append(
                self._make_chunk(
                    "\n\n".join(block.text for block in current),
                    current[0].start_line,
                    current[-1].end_line,
                    hierarchy,
                    self._piece_id(ids, base_id, len(chunks)),
                )
            )

        for block in blocks:
            block_words = count_words(block.text)
            if current_words + block_words > self.options.max_words and current:
                flush()
                current = []
                current_words = 0
            current.append(block)
            current_words += block_words

        if current:
            flush()
        return chunks

    def _group_sentences(
        self,
        blocks: Sequence[TextBlock],
        hierarchy: List[str],
        ids: _ChunkIds,
        base_id: str | None,
    ) -> List[Chunk]:
        # overlap never reaches max_words, otherwise seeds would grow chunks forever
        overlap = min(self.options.overlap_words, self.options.max_words // 2)
        chunks: List[Chunk] = []
        seed = ""
        fresh: List[TextBlock] = []
        current_words = 0

        def flush() -> str:
            parts = ([seed] if seed else []) + [block.text for block in fresh]
            content = " ".join(parts)
            chunks.append(
                self._make_chunk(
                    content,
                    fresh[0].start_line,
                    fresh[-1].end_line,
                    hierarchy,
                    self._piece_id(ids, base_id, len(chunks)),
                )
            )
            return content

        for block in blocks:
            block_words = count_words(block.text)
            if current_words + block_words > self.options.max_words and fresh:
                flushed = flush()
                seed = " ".join(flushed.split()[-overlap:]) if overlap > 0 else ""
                fresh = []
                current_words = count_words(seed)
            fresh.append(block)
            current_words += block_words

        if fresh:
            flush()
        return chunks

    @staticmethod
    def _piece_id(ids: _ChunkIds, base_id: str | None, position: int) -> str:
        if base_id:
            return ids.named(f"{base_id}-{position}")
        return ids.sequential()

    @staticmethod
    def _make_chunk(
        content: str, start_line: int, end_line: int, hierarchy: List[str], chunk_id: str
    ) -> Chunk:
        return Chunk(
            chunk_id=chunk_id,
            content=content,
            headings=list(hierarchy),
            start_line=start_line,
            end_line=end_line,
            word_count=count_words(content),
            preview=create_preview(content),
        )

    def _report(self, chunks: List[Chunk]) -> List[Chunk]:
        self.logger.debug("Created %d chunks", len(chunks))
        for position, chunk in enumerate(chunks):
            self.logger.debug('  Chunk %d: %d words, "%s"', position, chunk.word_count, chunk.preview)
        return chunks
