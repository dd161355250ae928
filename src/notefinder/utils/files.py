"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

MARKDOWN_SUFFIXES = {".md", ".markdown"}


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts)


def iter_markdown_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield Markdown paths from input paths, descending into directories.

    Files under hidden directories (``.obsidian``, ``.trash``...) are skipped.
    """
    for item in inputs:
        if item.is_dir():
            yield from iter_markdown_paths(
                sorted(
                    child
                    for child in item.rglob("*")
                    if child.is_file() and not _is_hidden(child, item)
                )
            )
        elif item.is_file() and item.suffix.lower() in MARKDOWN_SUFFIXES:
            yield item


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) if it does not exist yet."""
    path.mkdir(parents=True, exist_ok=True)
    return path
