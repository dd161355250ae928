"""Text helpers shared by the chunker, cache and processor."""

from __future__ import annotations

import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def count_words(text: str) -> int:
    """Count whitespace-separated tokens."""
    return len(text.split())


def create_preview(text: str, max_length: int = 150) -> str:
    """Collapse whitespace and truncate to ``max_length`` characters.

    The cut happens at the last space when that space lies past 80% of
    ``max_length``; otherwise the text is hard-truncated. Truncated previews
    end with ``...``.
    """
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def compute_hash(content: str) -> str:
    """Return the SHA256 hex digest of ``content``."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def slugify(text: str, max_length: int = 50) -> str:
    """Turn heading text into a URL-safe identifier."""
    slug = _NON_ALNUM_RE.sub("-", text.lower()).strip("-")
    return slug[:max_length]


def format_time(seconds: int) -> str:
    minutes, remaining = divmod(max(int(seconds), 0), 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{remaining}s"
