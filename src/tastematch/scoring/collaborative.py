"""Collaborative filtering over embedding taste-neighbours.

  1. Taste-neighbours: up to ``top_n`` onboarded profiles whose embedding is
     more similar than ``sim_threshold`` to the user's (via ``NeighborIndex``)
  2. Their positive-weight interactions in the requested domain
  3. Minus anything the user already interacted with
  4. Folded per target:  score += neighbour_similarity * action_weight
  5. Ranked, capped, with attribution (top contributors, mean similarity)

Skip-only targets never surface: non-positive weights are dropped before
aggregation.  Neighbours reported with a non-finite similarity are ignored.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from src.tastematch.config import settings
from src.tastematch.models import ACTION_WEIGHTS, CFCandidate, CFResult, Interaction, Neighbor
from src.tastematch.neighbors import NeighborIndex
from src.tastematch.vectors import clamp_score, is_valid, round_half_up

logger = logging.getLogger(__name__)

ENGAGED_ACTIONS = frozenset({"love", "like", "save"})
MAX_ATTRIBUTED_NAMES = 2
UNNAMED_NEIGHBOR = "Someone"


@dataclass(frozen=True)
class Contribution:
    target_id: str
    neighbor_id: str
    similarity: float
    action: str
    weight: float

    @property
    def action_weight(self) -> float:
        return ACTION_WEIGHTS.get(self.action) or self.weight or 1.0

    @property
    def value(self) -> float:
        return self.similarity * self.action_weight


def neighbor_contributions(
    user_id: str,
    domain: str,
    neighbors: Sequence[Neighbor],
    interactions: Iterable[Interaction],
) -> list[Contribution]:
    """Positive same-domain neighbour interactions on targets the user never touched."""
    interactions = list(interactions)
    sims = {
        n.profile_id: n.similarity
        for n in neighbors
        if n.profile_id != user_id and math.isfinite(n.similarity)
    }
    seen = {i.target_id for i in interactions if i.actor_id == user_id}
    return [
        Contribution(i.target_id, i.actor_id, sims[i.actor_id], i.action, i.weight)
        for i in interactions
        if i.actor_id in sims
        and i.domain == domain
        and i.weight > 0
        and i.target_id not in seen
    ]


def _aggregate(
    target_id: str,
    contributions: Sequence[Contribution],
    names: Mapping[str, str],
    sims: Mapping[str, float],
) -> CFCandidate:
    contributor_ids = tuple(dict.fromkeys(c.neighbor_id for c in contributions))
    ranked = sorted(contributor_ids, key=lambda nid: sims.get(nid, 0.0), reverse=True)
    mean_sim = sum(c.similarity for c in contributions) / len(contributions)
    return CFCandidate(
        target_id=target_id,
        score=sum(c.value for c in contributions),
        loved_by_count=sum(1 for c in contributions if c.action in ENGAGED_ACTIONS),
        avg_neighbor_similarity=round_half_up(mean_sim * 100) / 100,
        contributor_ids=contributor_ids,
        top_neighbor_names=tuple(
            names.get(nid) or UNNAMED_NEIGHBOR for nid in ranked[:MAX_ATTRIBUTED_NAMES]
        ),
    )


def fold_contributions(
    contributions: Iterable[Contribution],
    neighbors: Sequence[Neighbor],
) -> Mapping[str, CFCandidate]:
    """Per-target aggregates as a read-only mapping, in first-seen target order."""
    grouped: dict[str, list[Contribution]] = {}
    for c in contributions:
        grouped.setdefault(c.target_id, []).append(c)
    names = {n.profile_id: n.display_name for n in neighbors}
    sims = {n.profile_id: n.similarity for n in neighbors}
    return MappingProxyType({
        target: _aggregate(target, group, names, sims)
        for target, group in grouped.items()
    })


def cf_candidates(
    user_id: str,
    domain: str,
    user_embedding: Sequence[float] | None,
    neighbor_index: NeighborIndex,
    interactions: Iterable[Interaction],
    *,
    top_n: int | None = None,
    sim_threshold: float | None = None,
    max_candidates: int | None = None,
) -> CFResult:
    if not is_valid(user_embedding):
        return CFResult()

    limit = settings.cf_top_n if top_n is None else top_n
    if limit <= 0:
        return CFResult()
    neighbors = neighbor_index.nearest(
        user_embedding,
        threshold=settings.cf_similarity_threshold if sim_threshold is None else sim_threshold,
        limit=limit,
        exclude_id=user_id,
    )
    neighbors = [
        n for n in neighbors
        if n.profile_id != user_id and math.isfinite(n.similarity)
    ][:limit]
    if not neighbors:
        logger.debug("CF %s/%s: no taste-neighbours", user_id, domain)
        return CFResult()

    contributions = neighbor_contributions(user_id, domain, neighbors, interactions)
    aggregates = fold_contributions(contributions, neighbors)

    ranked = sorted(aggregates.values(), key=lambda c: c.score, reverse=True)
    cap = settings.cf_max_candidates if max_candidates is None else max(max_candidates, 0)
    logger.debug(
        "CF %s/%s: %d neighbours, %d contributions, %d candidates",
        user_id, domain, len(neighbors), len(contributions), len(ranked),
    )
    return CFResult(candidates=tuple(ranked[:cap]), neighbor_count=len(neighbors))


def normalize_cf_scores(result: CFResult) -> dict[str, int]:
    """Raw aggregates mapped onto [15, 100] relative to the strongest candidate."""
    if result.empty:
        return {}
    best = max(c.score for c in result.candidates)
    if best <= 0:
        return {}
    return {c.target_id: clamp_score(c.score / best * 100.0) for c in result.candidates}
