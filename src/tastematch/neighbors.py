"""Nearest-neighbour query over profile embeddings.

The scoring core only depends on ``NeighborIndex``.  Production deployments
back it with a vector index in the data store; ``InMemoryNeighborIndex`` is an
exact cosine scan used for sample data, the demo UI and tests.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence

import numpy as np

from src.tastematch.models import Neighbor, Profile
from src.tastematch.vectors import is_valid

logger = logging.getLogger(__name__)


class NeighborIndex(Protocol):
    def nearest(
        self,
        embedding: Sequence[float],
        *,
        threshold: float,
        limit: int,
        exclude_id: str | None = None,
    ) -> list[Neighbor]:
        """Profiles whose similarity to ``embedding`` is strictly above ``threshold``."""
        ...


class InMemoryNeighborIndex:
    """Exact search over onboarded profiles with a valid embedding."""

    def __init__(self, profiles: Iterable[Profile]):
        eligible = [
            p for p in profiles
            if p.onboarding_complete and is_valid(p.embedding)
        ]
        self._profiles = eligible
        if eligible:
            matrix = np.asarray([p.embedding for p in eligible], dtype=float)
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            self._matrix = matrix / norms
        else:
            self._matrix = np.empty((0, 0))
        logger.debug("Neighbour index built over %d profiles", len(eligible))

    def __len__(self) -> int:
        return len(self._profiles)

    def nearest(
        self,
        embedding: Sequence[float],
        *,
        threshold: float,
        limit: int,
        exclude_id: str | None = None,
    ) -> list[Neighbor]:
        if not self._profiles or not is_valid(embedding) or limit <= 0:
            return []
        query = np.asarray(embedding, dtype=float)
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        sims = self._matrix @ (query / norm)

        # Stable: equal similarities keep insertion order.
        order = np.argsort(-sims, kind="stable")
        found: list[Neighbor] = []
        for idx in order:
            profile = self._profiles[idx]
            similarity = float(sims[idx])
            if profile.id == exclude_id or similarity <= threshold:
                continue
            found.append(Neighbor(
                profile_id=profile.id,
                display_name=profile.display_name,
                similarity=similarity,
            ))
            if len(found) >= limit:
                break
        return found
