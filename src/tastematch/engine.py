"""Top-level orchestrator — ties all components together.

Pipeline per request:
  1. Receive already-fetched profile, candidates and interaction history
  2. Resolve collaborator signals (neighbour query for CF)   (may fail -> no CF)
  3. Score every candidate with the hybrid scorer            (deterministic)
  4. Attach short / long / audit explanations                (deterministic)
  5. Rank descending, ties kept in input order
  6. Optionally narrate the top-K with Claude                (optional)

Also hosts the write-side helpers the service layer calls: onboarding,
catalog embedding backfill and profile embedding refresh.  None of them
persist anything; they return updated copies.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from anthropic import Anthropic

from src.tastematch.config import settings
from src.tastematch.domain_model import generate_clusters
from src.tastematch.embeddings import (
    EmbeddingService,
    build_embedding_text,
    recompute_profile_embedding,
)
from src.tastematch.explanation.generator import generate_explanation
from src.tastematch.explanation.narrator import narrate
from src.tastematch.models import (
    Catalog,
    CFResult,
    ContentEntity,
    GeoPoint,
    Interaction,
    Profile,
    ScoredCandidate,
    TraitVector,
)
from src.tastematch.neighbors import NeighborIndex
from src.tastematch.scoring.collaborative import cf_candidates, normalize_cf_scores
from src.tastematch.scoring.hybrid import score_event, score_hobby, score_item, score_person
from src.tastematch.scoring.traits import build_traits_from_selections
from src.tastematch.vectors import is_valid

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent.parent / "data"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_catalog(path: Path | str) -> Catalog:
    with open(path) as f:
        raw = json.load(f)
    return Catalog(**raw)


def load_sample_catalog() -> Catalog:
    return load_catalog(DATA_DIR / "sample_catalog.json")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _limit(top_k: int | None) -> int:
    return settings.top_k if top_k is None else top_k


def _rank(candidates: list[ScoredCandidate], top_k: int | None) -> list[ScoredCandidate]:
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return ranked[:_limit(top_k)]


def _explained(
    candidate: ScoredCandidate,
    requester: TraitVector,
    target: TraitVector,
    target_label: str | None = None,
) -> ScoredCandidate:
    explanation = generate_explanation(candidate, requester, target, target_label=target_label)
    return candidate.model_copy(update={"explanation": explanation})


def exclude_interacted(
    entities: Iterable[ContentEntity],
    interactions: Iterable[Interaction],
    user_id: str,
) -> list[ContentEntity]:
    seen = {i.target_id for i in interactions if i.actor_id == user_id}
    return [e for e in entities if e.id not in seen]


def collaborative_signals(
    profile: Profile,
    domain: str,
    neighbor_index: NeighborIndex | None,
    interactions: Sequence[Interaction],
) -> CFResult:
    if neighbor_index is None or not is_valid(profile.embedding):
        return CFResult()
    try:
        return cf_candidates(
            profile.id, domain, profile.embedding, neighbor_index, interactions,
        )
    except Exception:
        logger.warning(
            "Neighbour query failed for %s/%s; ranking without CF",
            profile.id, domain, exc_info=True,
        )
        return CFResult()


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------

def recommend_items(
    profile: Profile,
    items: Iterable[ContentEntity],
    interactions: Sequence[Interaction],
    *,
    domain: str,
    neighbor_index: NeighborIndex | None = None,
    top_k: int | None = None,
) -> list[ScoredCandidate]:
    available = exclude_interacted(items, interactions, profile.id)
    cf = collaborative_signals(profile, domain, neighbor_index, interactions)
    cf_scores = normalize_cf_scores(cf)
    attribution = cf.by_target()

    scored = [
        _explained(
            score_item(profile, item, cf_scores, attribution),
            profile.traits, item.traits,
        )
        for item in available
    ]
    ranked = _rank(scored, top_k)
    logger.info(
        "Recommended %d/%d %s items for %s (neighbours=%d, cf candidates=%d)",
        len(ranked), len(scored), domain, profile.id, cf.neighbor_count, len(cf.candidates),
    )
    return ranked


def match_people(
    me: Profile,
    others: Iterable[Profile],
    top_k: int | None = None,
) -> list[ScoredCandidate]:
    scored = [
        _explained(score_person(me, other), me.traits, other.traits, other.display_name or None)
        for other in others
        if other.id != me.id
    ]
    ranked = _rank(scored, top_k)
    logger.info("Matched %s against %d people", me.id, len(scored))
    return ranked


def match_attendees(
    me: Profile,
    event: ContentEntity,
    profiles: Iterable[Profile],
    top_k: int | None = None,
) -> list[ScoredCandidate]:
    """Rank the people going to ``event`` by taste fit with ``me``."""
    going = set(event.attendee_ids)
    attendees = [p for p in profiles if p.id in going]
    logger.debug("Event %s: %d/%d attendees have profiles", event.id, len(attendees), len(going))
    return match_people(me, attendees, top_k)


def rank_events(
    profile: Profile,
    events: Iterable[ContentEntity],
    *,
    origin: GeoPoint | None = None,
    now: datetime | None = None,
    friend_ids: Iterable[str] = (),
    top_k: int | None = None,
) -> list[ScoredCandidate]:
    friends = set(friend_ids)
    scored = [
        _explained(
            score_event(profile, event, origin, now, friends),
            profile.traits, event.traits,
        )
        for event in events
    ]
    ranked = _rank(scored, top_k)
    logger.info("Ranked %d events for %s", len(scored), profile.id)
    return ranked


def rank_hobbies(
    profile: Profile,
    hobbies: Iterable[ContentEntity],
    top_k: int | None = None,
) -> list[ScoredCandidate]:
    scored = [
        _explained(score_hobby(profile, hobby), profile.traits, hobby.traits)
        for hobby in hobbies
    ]
    ranked = _rank(scored, top_k)
    logger.info("Ranked %d hobbies for %s", len(scored), profile.id)
    return ranked


def narrate_top(
    candidates: Sequence[ScoredCandidate],
    client: Anthropic,
    requester_name: str,
    labels: Mapping[str, str],
) -> list[ScoredCandidate]:
    return [
        c.model_copy(update={
            "narrative": narrate(client, c, requester_name, labels.get(c.target_id, c.target_id)),
        })
        for c in candidates
    ]


# ---------------------------------------------------------------------------
# Write-side helpers
# ---------------------------------------------------------------------------

def onboard_profile(
    profile_id: str,
    display_name: str,
    selections: Mapping[str, list[str]],
    quiz_scores: Mapping[str, float] | None = None,
    location: GeoPoint | None = None,
) -> Profile:
    traits = build_traits_from_selections(selections, quiz_scores)
    profile = Profile(
        id=profile_id,
        display_name=display_name,
        traits=traits,
        clusters=generate_clusters(traits),
        onboarding_complete=True,
        location=location,
    )
    logger.info("Onboarded %s with clusters %s", profile_id, profile.clusters)
    return profile


def embed_catalog(
    service: EmbeddingService,
    entities: Sequence[ContentEntity],
) -> list[ContentEntity]:
    """Backfill embeddings for entities that lack a valid one.

    Entities the service cannot embed keep ``embedding=None`` and score
    trait-only until a later backfill succeeds.
    """
    missing = [e for e in entities if not is_valid(e.embedding)]
    if not missing:
        return list(entities)
    texts = [build_embedding_text(e.title, e.tags, e.description) for e in missing]
    vectors = dict(zip((e.id for e in missing), service.embed_batch(texts)))
    return [
        e.model_copy(update={"embedding": vectors[e.id]}) if e.id in vectors else e
        for e in entities
    ]


def refresh_profile_embedding(
    profile: Profile,
    interactions: Iterable[Interaction],
    entities: Iterable[ContentEntity],
) -> Profile:
    """Recompute the profile vector from its own interaction history.

    Concurrent refreshes for one user need no coordination: the stored
    vector is last-write-wins.  A degenerate history leaves the previous
    embedding untouched.
    """
    own = [i for i in interactions if i.actor_id == profile.id]
    embeddings = {e.id: e.embedding for e in entities}
    updated = recompute_profile_embedding(own, embeddings)
    if updated is None:
        logger.info("Profile %s: degenerate history, keeping previous embedding", profile.id)
        return profile
    return profile.model_copy(update={"embedding": updated})
