"""Per-model JSON embedding cache keyed by note path and content hash."""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from notefinder.models import CachedChunk, ChunkedEmbeddingEntry, ChunkEmbedding, NoteMetadata
from notefinder.utils.files import ensure_directory
from notefinder.utils.text import compute_hash

LOGGER = logging.getLogger(__name__)

CACHE_VERSION = "1.0.0"
CACHE_FILENAME = "embeddings.json"


def _now_ms() -> int:
    return int(time.time() * 1000)


def model_slug(model_name: str) -> str:
    """Directory name for a model, e.g. ``intfloat--multilingual-e5-small``."""
    return model_name.strip().replace("\\", "--").replace("/", "--") or "default"


@dataclass(slots=True)
class CacheStats:
    count: int
    chunk_count: int
    size: int
    oldest_timestamp: int
    newest_timestamp: int


class EmbeddingCache:
    """Persistence layer for chunk embeddings of one embedding model.

    Each model lives in its own ``<cache_dir>/<model-slug>/embeddings.json``
    so switching models never touches another model's vectors.
    """

    def __init__(
        self, cache_dir: Path, model_name: str, *, logger: logging.Logger | None = None
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.model_name = model_name
        self.logger = logger or LOGGER
        self._data = self._empty()
        self._dirty = False

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / model_slug(self.model_name) / CACHE_FILENAME

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def _empty(self) -> Dict[str, Any]:
        return {
            "version": CACHE_VERSION,
            "model": self.model_name,
            "created": _now_ms(),
            "embeddings": {},
        }

    @property
    def _entries(self) -> Dict[str, ChunkedEmbeddingEntry]:
        return self._data["embeddings"]

    def initialize(self) -> None:
        """Load the cache file for the active model, if any.

        A corrupt file is logged and replaced by an empty cache.
        """
        ensure_directory(self.cache_file.parent)
        self._data = self._empty()
        self._dirty = False

        if not self.cache_file.exists():
            return

        try:
            raw = json.loads(self.cache_file.read_text(encoding="utf-8"))
            self._data = self._parse(raw)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self.logger.error("Failed to load cache %s: %s", self.cache_file, exc)
            self._data = self._empty()
            return

        self.logger.info(
            "Loaded cache with %d files, %d chunks",
            len(self._entries),
            sum(len(entry.chunks) for entry in self._entries.values()),
        )

    def _parse(self, raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict) or not isinstance(raw.get("embeddings"), dict):
            raise ValueError("cache file has no embeddings mapping")
        return {
            "version": str(raw.get("version", CACHE_VERSION)),
            "model": str(raw.get("model", self.model_name)),
            "created": int(raw.get("created", _now_ms())),
            "embeddings": {
                str(path): ChunkedEmbeddingEntry.from_dict(entry)
                for path, entry in raw["embeddings"].items()
            },
        }

    def get(self, path: str, content_hash: str) -> List[ChunkEmbedding] | None:
        """Return cached chunks only when ``content_hash`` matches."""
        entry = self._entries.get(path)
        if entry is None or entry.file_hash != content_hash:
            return None
        return entry.chunks

    def set(
        self,
        path: str,
        chunks: Sequence[ChunkEmbedding],
        content_hash: str,
        metadata: NoteMetadata,
    ) -> None:
        self._entries[path] = ChunkedEmbeddingEntry(
            file_hash=content_hash,
            timestamp=_now_ms(),
            metadata=metadata,
            chunks=list(chunks),
        )
        self._dirty = True

    def remove(self, path: str) -> None:
        if path in self._entries:
            del self._entries[path]
            self._dirty = True

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def has(self, path: str, content_hash: str) -> bool:
        entry = self._entries.get(path)
        return entry is not None and entry.file_hash == content_hash

    def get_all(self) -> Dict[str, ChunkedEmbeddingEntry]:
        return self._entries

    def get_paths(self) -> List[str]:
        return list(self._entries)

    def get_all_chunks_flattened(self) -> List[CachedChunk]:
        """Denormalize every cached chunk into one list for scanning."""
        rows: List[CachedChunk] = []
        for path, entry in self._entries.items():
            for item in entry.chunks:
                rows.append(
                    CachedChunk(
                        path=path,
                        chunk_id=item.chunk_id,
                        vector=item.vector,
                        chunk=item.chunk,
                        metadata=entry.metadata,
                    )
                )
        return rows

    @staticmethod
    def compute_hash(content: str) -> str:
        return compute_hash(content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self._data["version"],
            "model": self._data["model"],
            "created": self._data["created"],
            "embeddings": {path: entry.to_dict() for path, entry in self._entries.items()},
        }

    def _serialize(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def save(self) -> None:
        """Write the cache to disk when it has unsaved changes.

        Raises:
            OSError: when the file cannot be written.
        """
        if not self._dirty:
            return

        target = self.cache_file
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            ensure_directory(target.parent)
            tmp_path.write_text(self._serialize(), encoding="utf-8")
            os.replace(tmp_path, target)
        except OSError as exc:
            self.logger.error("Failed to save cache %s: %s", target, exc)
            raise

        self._dirty = False
        self.logger.debug(
            "Saved cache with %d files, %d chunks",
            len(self._entries),
            sum(len(entry.chunks) for entry in self._entries.values()),
        )

    def get_stats(self) -> CacheStats:
        entries = list(self._entries.values())
        timestamps = [entry.timestamp for entry in entries]
        return CacheStats(
            count=len(entries),
            chunk_count=sum(len(entry.chunks) for entry in entries),
            size=len(self._serialize().encode("utf-8")),
            oldest_timestamp=min(timestamps, default=_now_ms()),
            newest_timestamp=max(timestamps, default=0),
        )

    def switch_model(self, model_name: str) -> None:
        """Persist pending changes and load ``model_name``'s cache."""
        if model_name == self.model_name:
            return
        self.save()
        self.model_name = model_name
        self.initialize()
