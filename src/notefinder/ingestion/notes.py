"""Markdown note loading and metadata extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol

from notefinder.models import NoteMetadata
from notefinder.utils.files import iter_markdown_paths
from notefinder.utils.text import count_words

LOGGER = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_CODE_FENCE_RE = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`[^`]+`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MARKUP_RE = re.compile(r"[*_~#]")
_INLINE_TAG_RE = re.compile(r"(?<![\w#/&])#([\w/-]*[^\W\d][\w/-]*)")
_TAGS_KEY_RE = re.compile(r"^tags\s*:\s*(.*)$")


@dataclass(frozen=True, slots=True)
class NoteHandle:
    """A note identified by its POSIX path relative to the notes root."""

    path: str


class DocumentSource(Protocol):
    def list_documents(self) -> List[NoteHandle]: ...

    def read_raw(self, doc: NoteHandle) -> str: ...

    def read_text(self, doc: NoteHandle) -> str: ...

    def get_modified_time(self, doc: NoteHandle) -> float: ...

    def extract_metadata(self, doc: NoteHandle) -> NoteMetadata: ...

    def exists(self, path: str) -> bool: ...


def strip_frontmatter(content: str) -> str:
    return FRONTMATTER_RE.sub("", content, count=1)


def clean_markdown(content: str) -> str:
    """Reduce Markdown to plain prose for word counting."""
    cleaned = strip_frontmatter(content)
    cleaned = _CODE_FENCE_RE.sub("", cleaned)
    cleaned = _INLINE_CODE_RE.sub("", cleaned)
    cleaned = _LINK_RE.sub(r"\1", cleaned)
    cleaned = _MARKUP_RE.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def _frontmatter_tags(frontmatter: str) -> List[str]:
    tags: List[str] = []
    lines = frontmatter.splitlines()
    for index, line in enumerate(lines):
        match = _TAGS_KEY_RE.match(line)
        if not match:
            continue
        value = match.group(1).strip()
        if value:
            value = value.strip("[]")
            tags.extend(part.strip().strip("'\"") for part in value.split(","))
        else:
            for item in lines[index + 1 :]:
                stripped = item.strip()
                if not stripped.startswith("-"):
                    break
                tags.append(stripped[1:].strip().strip("'\""))
        break
    return [tag.lstrip("#") for tag in tags if tag.lstrip("#")]


def extract_tags(content: str) -> List[str]:
    """Collect inline and frontmatter tags as ``#tag``, de-duplicated in order."""
    tags: List[str] = []
    match = FRONTMATTER_RE.match(content)
    body = content
    if match:
        tags.extend(f"#{tag}" for tag in _frontmatter_tags(match.group(1)))
        body = content[match.end() :]

    body = _INLINE_CODE_RE.sub("", _CODE_FENCE_RE.sub("", body))
    tags.extend(f"#{tag}" for tag in _INLINE_TAG_RE.findall(body))
    return list(dict.fromkeys(tags))


class FolderDocumentSource:
    """Reads Markdown notes below ``root``."""

    def __init__(self, root: Path, *, logger: logging.Logger | None = None) -> None:
        self.root = Path(root)
        self.logger = logger or LOGGER

    def _resolve(self, doc: NoteHandle) -> Path:
        return self.root / doc.path

    def list_documents(self) -> List[NoteHandle]:
        if not self.root.is_dir():
            self.logger.warning("Notes folder not found: %s", self.root)
            return []
        return [
            NoteHandle(path.relative_to(self.root).as_posix())
            for path in iter_markdown_paths([self.root])
        ]

    def read_raw(self, doc: NoteHandle) -> str:
        return self._resolve(doc).read_text(encoding="utf-8")

    def read_text(self, doc: NoteHandle) -> str:
        """Return the note body with frontmatter removed, structure intact."""
        return strip_frontmatter(self.read_raw(doc))

    def get_modified_time(self, doc: NoteHandle) -> float:
        return self._resolve(doc).stat().st_mtime

    def extract_metadata(self, doc: NoteHandle) -> NoteMetadata:
        raw = self.read_raw(doc)
        parent = Path(doc.path).parent.as_posix()
        return NoteMetadata(
            word_count=count_words(clean_markdown(raw)),
            tags=extract_tags(raw),
            folder="" if parent == "." else parent,
        )

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    def handle_for(self, path: Path) -> NoteHandle:
        """Build a handle from a filesystem path inside or relative to ``root``."""
        candidate = Path(path)
        if candidate.is_absolute():
            candidate = candidate.resolve().relative_to(self.root.resolve())
        return NoteHandle(candidate.as_posix())
