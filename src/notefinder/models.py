"""Core NoteFinder data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(slots=True)
class Heading:
    """A Markdown heading line."""

    level: int
    text: str
    line_number: int
    raw: str


@dataclass(slots=True)
class Section:
    """Contiguous span of lines owned by zero or one heading.

    ``content_lines`` only holds the section's own lines; nested sections are
    referenced by index into the owning :class:`SectionTree`.
    """

    heading: Heading | None
    content_lines: List[str]
    start_line: int
    end_line: int
    children: List[int] = field(default_factory=list)


@dataclass(slots=True)
class SectionTree:
    """Arena of sections; ``roots`` and ``children`` hold node indices."""

    nodes: List[Section] = field(default_factory=list)
    roots: List[int] = field(default_factory=list)

    def add(self, section: Section, parent: int | None = None) -> int:
        index = len(self.nodes)
        self.nodes.append(section)
        if parent is None:
            self.roots.append(index)
        else:
            self.nodes[parent].children.append(index)
        return index

    def walk(self) -> List[Section]:
        """Return sections in document (pre-)order."""
        ordered: List[Section] = []
        stack = list(reversed(self.roots))
        while stack:
            node = self.nodes[stack.pop()]
            ordered.append(node)
            stack.extend(reversed(node.children))
        return ordered


@dataclass(slots=True)
class Chunk:
    """Semantically scoped span of a note."""

    chunk_id: str
    content: str
    headings: List[str]
    start_line: int
    end_line: int
    word_count: int
    preview: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunkId": self.chunk_id,
            "content": self.content,
            "headings": list(self.headings),
            "startLine": self.start_line,
            "endLine": self.end_line,
            "wordCount": self.word_count,
            "preview": self.preview,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(
            chunk_id=str(data["chunkId"]),
            content=str(data["content"]),
            headings=[str(h) for h in data.get("headings", [])],
            start_line=int(data["startLine"]),
            end_line=int(data["endLine"]),
            word_count=int(data["wordCount"]),
            preview=str(data.get("preview", "")),
        )


@dataclass(slots=True)
class ChunkEmbedding:
    """A chunk paired with its embedding vector."""

    chunk_id: str
    vector: List[float]
    chunk: Chunk

    def to_dict(self) -> Dict[str, Any]:
        return {"chunkId": self.chunk_id, "vector": list(self.vector), "chunk": self.chunk.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkEmbedding":
        return cls(
            chunk_id=str(data["chunkId"]),
            vector=[float(v) for v in data["vector"]],
            chunk=Chunk.from_dict(data["chunk"]),
        )


@dataclass(slots=True)
class NoteMetadata:
    """Note-level metadata supplied by the document source."""

    word_count: int = 0
    tags: List[str] = field(default_factory=list)
    folder: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"wordCount": self.word_count, "tags": list(self.tags), "folder": self.folder}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NoteMetadata":
        return cls(
            word_count=int(data.get("wordCount", 0)),
            tags=[str(t) for t in data.get("tags", [])],
            folder=str(data.get("folder", "")),
        )


@dataclass(slots=True)
class ChunkedEmbeddingEntry:
    """Cached embeddings of one note, valid only for ``file_hash``."""

    file_hash: str
    timestamp: int
    metadata: NoteMetadata
    chunks: List[ChunkEmbedding]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileHash": self.file_hash,
            "timestamp": self.timestamp,
            "metadata": self.metadata.to_dict(),
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkedEmbeddingEntry":
        return cls(
            file_hash=str(data["fileHash"]),
            timestamp=int(data["timestamp"]),
            metadata=NoteMetadata.from_dict(data.get("metadata") or {}),
            chunks=[ChunkEmbedding.from_dict(item) for item in data["chunks"]],
        )


@dataclass(slots=True)
class CachedChunk:
    """Flattened cache row used for linear scanning."""

    path: str
    chunk_id: str
    vector: List[float]
    chunk: Chunk
    metadata: NoteMetadata
