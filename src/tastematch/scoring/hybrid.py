"""Hybrid Scorer — fuses vector, CF, trait and geo signals per target type.

  Target   | embeddings on both sides                 | otherwise
  ---------+------------------------------------------+-----------
  item     | vec .55 + cf .25 + trait .20   (CF data)  | trait only
           | vec .70 + trait .30            (no CF)    |
  person   | vec .60 + trait .40                      | trait only
  event    | vec .50 + trait .25 + geo .25            | trait only
  hobby    | vec .55 + trait .45                      | trait only

Each signal is resolved once into a ``SignalResolution``; fusion never
re-derives fallbacks ad hoc.  Pure functions: no I/O, no shared state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

from src.tastematch.config import (
    EventEnjoymentWeights,
    EventWeights,
    HobbyWeights,
    ItemWeights,
    SocialWeights,
    settings,
)
from src.tastematch.domain_model import shared_clusters
from src.tastematch.models import (
    CFCandidate,
    ContentEntity,
    FusionTerm,
    GeoPoint,
    Profile,
    ScoredCandidate,
    SignalScores,
)
from src.tastematch.scoring.composite import composite_score
from src.tastematch.scoring.geo import geo_score
from src.tastematch.scoring.traits import hobby_match, item_match, match_color, match_score
from src.tastematch.scoring.urgency import urgency_score
from src.tastematch.vectors import clamp_score, cosine_similarity, is_valid, similarity_to_score

logger = logging.getLogger(__name__)

STRONG_VECTOR = 75
GOOD_VECTOR = 50
CONVENIENT_GEO = 70


class SignalResolution(NamedTuple):
    value: int | None
    is_fallback: bool
    reason: str | None = None
    detail: Any = None


# ---------------------------------------------------------------------------
# Signal resolution
# ---------------------------------------------------------------------------

def resolve_vector_signal(
    requester: Sequence[float] | None,
    target: Sequence[float] | None,
) -> SignalResolution:
    if not is_valid(requester):
        return SignalResolution(None, True, "requester has no usable embedding")
    if not is_valid(target):
        return SignalResolution(None, True, "target has no usable embedding")
    similarity = cosine_similarity(requester, target)
    return SignalResolution(similarity_to_score(similarity), False, detail=similarity)


def resolve_cf_signal(
    target_id: str,
    cf_scores: Mapping[str, int] | None,
) -> SignalResolution:
    """CF is all-or-nothing per request: once any neighbour data exists,
    targets nobody touched get the neutral score instead of a fallback."""
    if not cf_scores:
        return SignalResolution(None, True, "no collaborative-filtering data")
    if target_id in cf_scores:
        return SignalResolution(cf_scores[target_id], False)
    return SignalResolution(settings.neutral_cf_score, False)


def resolve_geo_signal(
    origin: GeoPoint | None,
    destination: GeoPoint | None,
) -> SignalResolution:
    geo = geo_score(origin, destination)
    if geo.distance_km is None:
        return SignalResolution(geo.bonus, True, "missing coordinates", geo)
    return SignalResolution(geo.bonus, False, detail=geo)


def resolve_urgency_signal(
    deadlines: Iterable[datetime | None],
    now: datetime,
) -> SignalResolution:
    urgency = urgency_score(deadlines, now)
    if urgency.deadline is None:
        # No future deadline still reports 0; the label says why.
        return SignalResolution(urgency.score, True, urgency.label, urgency)
    return SignalResolution(urgency.score, False, detail=urgency)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _vector_lead(vector_score: int, strong: str, good: str | None) -> list[str]:
    if vector_score >= STRONG_VECTOR:
        return [strong]
    if vector_score >= GOOD_VECTOR and good:
        return [good]
    return []


def _trait_only(
    target_id: str,
    kind: str,
    trait_score: int,
    reason: str | None,
    sub_scores: SignalScores | None = None,
    **extra: Any,
) -> ScoredCandidate:
    return ScoredCandidate(
        target_id=target_id,
        kind=kind,
        score=trait_score,
        sub_scores=sub_scores or SignalScores(traits=trait_score),
        terms=[FusionTerm(signal="traits", score=trait_score, weight=1.0)],
        scoring_method="trait-only",
        fallback_reason=reason,
        color=match_color(trait_score),
        **extra,
    )


# ---------------------------------------------------------------------------
# Items / clubs
# ---------------------------------------------------------------------------

def score_item(
    profile: Profile,
    item: ContentEntity,
    cf_scores: Mapping[str, int] | None = None,
    cf_attribution: Mapping[str, CFCandidate] | None = None,
    weights: ItemWeights | None = None,
) -> ScoredCandidate:
    w = weights or settings.item_weights
    trait_score, trait_reason = item_match(profile.traits, item.traits)
    vec = resolve_vector_signal(profile.embedding, item.embedding)

    if vec.is_fallback:
        return _trait_only(item.id, "item", trait_score, vec.reason, reasons=[trait_reason])

    cf = resolve_cf_signal(item.id, cf_scores)
    attribution = (cf_attribution or {}).get(item.id)
    if cf.is_fallback:
        vector_w, trait_w = w.without_collaborative()
        terms = [
            FusionTerm(signal="vector", score=vec.value, weight=vector_w),
            FusionTerm(signal="traits", score=trait_score, weight=trait_w),
        ]
        method, fallback = "embedding", cf.reason
    else:
        terms = [
            FusionTerm(signal="vector", score=vec.value, weight=w.vector),
            FusionTerm(signal="collaborative", score=cf.value, weight=w.collaborative),
            FusionTerm(signal="traits", score=trait_score, weight=w.traits),
        ]
        method, fallback = "hybrid", None

    score = composite_score(terms)
    reasons = _vector_lead(
        vec.value,
        "Strong semantic match to your taste profile",
        "Good alignment with your preferences",
    )
    if attribution is not None:
        reasons.append("Liked by people with similar taste")
    reasons.append(trait_reason)

    logger.debug(
        "Item %s: vec=%d cf=%s trait=%d -> %d (%s)",
        item.id, vec.value, cf.value, trait_score, score, method,
    )
    return ScoredCandidate(
        target_id=item.id,
        kind="item",
        score=score,
        sub_scores=SignalScores(vector=vec.value, collaborative=cf.value, traits=trait_score),
        terms=terms,
        scoring_method=method,
        fallback_reason=fallback,
        color=match_color(score),
        reasons=reasons,
        cf=attribution,
    )


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------

def score_person(
    me: Profile,
    other: Profile,
    weights: SocialWeights | None = None,
) -> ScoredCandidate:
    w = weights or settings.social_weights
    traits = match_score(me.traits, other.traits)
    mutual = shared_clusters(me.clusters, other.clusters)
    vec = resolve_vector_signal(me.embedding, other.embedding)

    if vec.is_fallback:
        return _trait_only(
            other.id, "person", traits.score, vec.reason,
            reasons=list(traits.explanations),
            mutual_count=len(mutual),
            mutual_labels=mutual,
        )

    terms = [
        FusionTerm(signal="vector", score=vec.value, weight=w.vector),
        FusionTerm(signal="traits", score=traits.score, weight=w.traits),
    ]
    score = composite_score(terms)
    reasons = _vector_lead(
        vec.value,
        "Deep taste alignment detected by AI analysis",
        "Meaningful overlap in taste preferences",
    ) + list(traits.explanations)

    logger.debug(
        "Person %s->%s: vec=%d trait=%d -> %d", me.id, other.id, vec.value, traits.score, score,
    )
    return ScoredCandidate(
        target_id=other.id,
        kind="person",
        score=score,
        sub_scores=SignalScores(vector=vec.value, traits=traits.score),
        terms=terms,
        scoring_method="hybrid",
        color=match_color(score),
        reasons=reasons,
        mutual_count=len(mutual),
        mutual_labels=mutual,
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

def score_event(
    profile: Profile,
    event: ContentEntity,
    origin: GeoPoint | None = None,
    now: datetime | None = None,
    friend_ids: Iterable[str] = (),
    weights: EventWeights | None = None,
    enjoyment_weights: EventEnjoymentWeights | None = None,
) -> ScoredCandidate:
    w = weights or settings.event_weights
    ew = enjoyment_weights or settings.event_enjoyment_weights
    now = now or datetime.now(timezone.utc)
    origin = origin or profile.location

    trait_score, trait_reason = item_match(profile.traits, event.traits)
    geo = resolve_geo_signal(origin, event.location)
    urgency = resolve_urgency_signal(event.deadlines(), now)
    vec = resolve_vector_signal(profile.embedding, event.embedding)
    mutual = len(set(event.attendee_ids) & set(friend_ids))
    common = dict(
        distance_bucket=geo.detail.bucket,
        urgency_label=urgency.detail.label,
        mutual_count=mutual,
    )

    if vec.is_fallback:
        return _trait_only(
            event.id, "event", trait_score, vec.reason,
            sub_scores=SignalScores(traits=trait_score, urgency=urgency.value),
            reasons=[trait_reason],
            predicted_enjoyment=trait_score,
            **common,
        )

    terms = [
        FusionTerm(signal="vector", score=vec.value, weight=w.vector),
        FusionTerm(signal="traits", score=trait_score, weight=w.traits),
        FusionTerm(signal="geo", score=geo.value, weight=w.geo),
    ]
    score = composite_score(terms)
    enjoyment = clamp_score(vec.value * ew.vector + trait_score * ew.traits)

    reasons = _vector_lead(
        vec.value,
        "AI predicts high enjoyment based on your taste DNA",
        "Good match with your preferences",
    ) or [trait_reason]
    if geo.detail.bucket and geo.value >= CONVENIENT_GEO:
        reasons.append(f"Conveniently located {geo.detail.bucket} away")

    logger.debug(
        "Event %s: vec=%d trait=%d geo=%d urgency=%s -> %d",
        event.id, vec.value, trait_score, geo.value, urgency.value, score,
    )
    return ScoredCandidate(
        target_id=event.id,
        kind="event",
        score=score,
        sub_scores=SignalScores(
            vector=vec.value, traits=trait_score, geo=geo.value, urgency=urgency.value,
        ),
        terms=terms,
        scoring_method="hybrid",
        fallback_reason=geo.reason,
        color=match_color(score),
        reasons=reasons,
        predicted_enjoyment=enjoyment,
        **common,
    )


# ---------------------------------------------------------------------------
# Hobbies
# ---------------------------------------------------------------------------

def score_hobby(
    profile: Profile,
    hobby: ContentEntity,
    weights: HobbyWeights | None = None,
) -> ScoredCandidate:
    w = weights or settings.hobby_weights
    trait_score, why = hobby_match(profile.traits, hobby.traits)
    vec = resolve_vector_signal(profile.embedding, hobby.embedding)

    if vec.is_fallback:
        return _trait_only(hobby.id, "hobby", trait_score, vec.reason, reasons=[why])

    terms = [
        FusionTerm(signal="vector", score=vec.value, weight=w.vector),
        FusionTerm(signal="traits", score=trait_score, weight=w.traits),
    ]
    score = composite_score(terms)
    if vec.value >= STRONG_VECTOR:
        why = f"AI analysis shows strong alignment. {why}"

    logger.debug("Hobby %s: vec=%d trait=%d -> %d", hobby.id, vec.value, trait_score, score)
    return ScoredCandidate(
        target_id=hobby.id,
        kind="hobby",
        score=score,
        sub_scores=SignalScores(vector=vec.value, traits=trait_score),
        terms=terms,
        scoring_method="hybrid",
        color=match_color(score),
        reasons=[why],
    )
