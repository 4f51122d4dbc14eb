"""
Scoring helpers shared by deduplication and retrieval.

- min-max scaling of a score channel
- cosine similarity between two embeddings
- deterministic content hashing

Documentation references:
- NumPy linear algebra: https://numpy.org/doc/stable/reference/routines.linalg.html
- hashlib: https://docs.python.org/3/library/hashlib.html
"""

import hashlib
from typing import List, Sequence

import numpy as np


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def min_max_normalize(values: Sequence[float]) -> List[float]:
    """
    Scale a sequence of scores into [0, 1].

    A flat channel (every value equal, including a single value) maps to all
    zeros so that it contributes nothing to a fused score.

    Args:
        values: Raw scores

    Returns:
        Normalized scores in the same order
    """
    if not values:
        return []

    low = min(values)
    high = max(values)
    span = high - low
    if span == 0:
        return [0.0] * len(values)
    return [(v - low) / span for v in values]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def compute_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
