"""Embedding similarity primitives — pure numeric helpers over dense vectors.

Any vector that is not exactly ``settings.embedding_dim`` finite floats is
treated as absent.  Callers tell "no embedding signal" apart from a real
similarity through ``is_valid``, never through the similarity value.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from src.tastematch.config import settings

Vector = Sequence[float]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round half-up, then bound to [score_floor, score_ceiling]."""
    if math.isnan(value):
        return settings.score_floor
    return max(settings.score_floor, min(settings.score_ceiling, round_half_up(value)))


def is_valid(vec: Vector | np.ndarray | None) -> bool:
    if vec is None:
        return False
    try:
        if len(vec) != settings.embedding_dim:
            return False
        arr = np.asarray(vec, dtype=float)
    except (TypeError, ValueError):
        return False
    return bool(np.isfinite(arr).all())


def cosine_similarity(u: Vector | None, v: Vector | None) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either side is not a valid vector."""
    if not (is_valid(u) and is_valid(v)):
        return 0.0
    a = np.asarray(u, dtype=float)
    b = np.asarray(v, dtype=float)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


def similarity_to_score(similarity: float) -> int:
    return clamp_score(((similarity + 1.0) / 2.0) * 100.0)


def weighted_average(
    vectors: Sequence[Vector],
    weights: Sequence[float],
) -> list[float] | None:
    """Signed weighted mean, re-normalised to unit length.

    Negative weights push the result away from their vectors.  Returns
    ``None`` when the result is degenerate: no vectors, mismatched lengths,
    zero total weight, or a zero-length mean.
    """
    if not vectors or len(vectors) != len(weights):
        return None
    dim = len(vectors[0])
    if dim == 0 or any(len(v) != dim for v in vectors):
        return None

    matrix = np.asarray(vectors, dtype=float)
    w = np.asarray(weights, dtype=float)
    if not (np.isfinite(matrix).all() and np.isfinite(w).all()):
        return None

    total_weight = float(np.abs(w).sum())
    if total_weight == 0:
        return None

    mean = (w[:, None] * matrix).sum(axis=0) / total_weight
    norm = float(np.linalg.norm(mean))
    if norm == 0:
        return None
    return (mean / norm).tolist()
