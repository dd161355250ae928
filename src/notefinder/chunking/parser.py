"""Markdown structure parsing: headings, sections, paragraphs and sentences."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

from notefinder.models import Heading, Section, SectionTree
from notefinder.utils.text import count_words, create_preview

__all__ = [
    "TextBlock",
    "build_heading_hierarchy",
    "build_section_tree",
    "count_words",
    "create_preview",
    "paragraph_blocks",
    "parse_headings",
    "sentence_blocks",
    "split_into_paragraphs",
    "split_into_sentences",
]

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass(slots=True)
class TextBlock:
    """A paragraph or sentence together with the lines it spans."""

    text: str
    start_line: int
    end_line: int


def parse_headings(content: str) -> List[Heading]:
    """Parse all headings from Markdown content, in document order."""
    headings: List[Heading] = []
    for index, line in enumerate(content.split("\n")):
        match = HEADING_RE.match(line)
        if match:
            headings.append(
                Heading(
                    level=len(match.group(1)),
                    text=match.group(2).strip(),
                    line_number=index,
                    raw=line.rstrip("\r"),
                )
            )
    return headings


def build_section_tree(
    lines: Sequence[str], headings: Sequence[Heading], max_heading_level: int
) -> SectionTree:
    """Build the section arena for ``lines``.

    Headings deeper than ``max_heading_level`` stay in the content of the
    enclosing section. Each heading becomes a child of the nearest preceding
    qualifying heading with a lower level.
    """
    tree = SectionTree()
    qualifying = [h for h in headings if h.level <= max_heading_level]

    if not qualifying:
        tree.add(
            Section(heading=None, content_lines=list(lines), start_line=0, end_line=len(lines) - 1)
        )
        return tree

    first_line = qualifying[0].line_number
    if first_line > 0:
        tree.add(
            Section(
                heading=None,
                content_lines=list(lines[:first_line]),
                start_line=0,
                end_line=first_line - 1,
            )
        )

    open_sections: List[tuple[int, int]] = []  # (level, node index)
    for position, heading in enumerate(qualifying):
        next_line = (
            qualifying[position + 1].line_number
            if position + 1 < len(qualifying)
            else len(lines)
        )
        section = Section(
            heading=heading,
            content_lines=list(lines[heading.line_number + 1 : next_line]),
            start_line=heading.line_number,
            end_line=next_line - 1,
        )

        while open_sections and open_sections[-1][0] >= heading.level:
            open_sections.pop()
        parent = open_sections[-1][1] if open_sections else None
        index = tree.add(section, parent)
        open_sections.append((heading.level, index))

    return tree


def paragraph_blocks(lines: Sequence[str], first_line: int = 0) -> List[TextBlock]:
    """Group non-blank line runs into paragraphs with their line numbers."""
    blocks: List[TextBlock] = []
    run: List[str] = []
    run_start = first_line

    for offset, line in enumerate(lines):
        if line.strip():
            if not run:
                run_start = first_line + offset
            run.append(line)
            continue
        if run:
            blocks.append(TextBlock("\n".join(run).strip(), run_start, run_start + len(run) - 1))
            run = []

    if run:
        blocks.append(TextBlock("\n".join(run).strip(), run_start, run_start + len(run) - 1))
    return blocks


def sentence_blocks(text: str, first_line: int = 0) -> List[TextBlock]:
    """Split text after ``.``, ``!`` or ``?`` followed by whitespace."""
    blocks: List[TextBlock] = []
    cursor = 0
    bounds = [(m.start(), m.end()) for m in _SENTENCE_BREAK_RE.finditer(text)]
    bounds.append((len(text), len(text)))

    for sep_start, sep_end in bounds:
        piece = text[cursor:sep_start]
        stripped = piece.strip()
        if stripped:
            begin = cursor + (len(piece) - len(piece.lstrip()))
            end = begin + len(stripped)
            blocks.append(
                TextBlock(
                    stripped,
                    first_line + text.count("\n", 0, begin),
                    first_line + text.count("\n", 0, end),
                )
            )
        cursor = sep_end
    return blocks


def split_into_paragraphs(content: str) -> List[str]:
    """Split content on blank-line runs."""
    return [block.text for block in paragraph_blocks(content.split("\n"))]


def split_into_sentences(content: str) -> List[str]:
    """Split content into sentences, keeping terminators."""
    return [block.text for block in sentence_blocks(content)]


def build_heading_hierarchy(headings: Sequence[Heading], current: Heading) -> List[str]:
    """Return the breadcrumb of raw heading lines ending with ``current``.

    Walks backwards from ``current`` collecting each heading whose level is
    strictly lower than the last one collected.
    """
    index = next(
        (i for i, h in enumerate(headings) if h.line_number == current.line_number),
        -1,
    )
    if index == -1:
        return [current.raw]

    hierarchy: List[str] = []
    level = current.level
    for heading in reversed(headings[:index]):
        if heading.level < level:
            hierarchy.insert(0, heading.raw)
            level = heading.level
            if level == 1:
                break

    hierarchy.append(current.raw)
    return hierarchy
