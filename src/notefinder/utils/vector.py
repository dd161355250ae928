"""Vector math used for similarity ranking."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Return the cosine similarity of two vectors.

    Raises:
        ValueError: if the vectors have different lengths.
    """
    left = np.asarray(a, dtype="float64")
    right = np.asarray(b, dtype="float64")
    if left.shape != right.shape:
        raise ValueError(f"Vector length mismatch: {left.shape[0]} != {right.shape[0]}")

    norm = float(np.linalg.norm(left) * np.linalg.norm(right))
    if norm == 0.0:
        return 0.0
    return float(np.dot(left, right) / norm)


def cosine_similarities(query: Sequence[float] | np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Score every row of ``matrix`` against ``query`` in one pass."""
    query_vec = np.asarray(query, dtype="float64")
    rows = np.asarray(matrix, dtype="float64")
    if rows.size == 0:
        return np.zeros(0, dtype="float64")
    if rows.ndim != 2 or rows.shape[1] != query_vec.shape[0]:
        raise ValueError(
            f"Vector length mismatch: query has {query_vec.shape[0]} dimensions, "
            f"candidates have {rows.shape[-1]}"
        )

    norms = np.linalg.norm(rows, axis=1) * np.linalg.norm(query_vec)
    dots = rows @ query_vec
    scores = np.zeros(rows.shape[0], dtype="float64")
    np.divide(dots, norms, out=scores, where=norms != 0)
    return scores
