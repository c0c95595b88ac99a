"""Explanation generator — scored candidate to human-readable rationale.

Produces three strings per candidate:
  short  one line, category template over the closest trait axes, CF and
         mutual counts, urgency and distance
  long   top-3 requester axes vs. the target's top-2 (overlap or complement),
         plus a taste-neighbour attribution sentence when CF contributed
  audit  the literal weighted sum, scoring method and fallback reason

Deterministic for fixed input.  Every optional field may be missing; the
clause that needs it is simply left out.
"""

from __future__ import annotations

import logging
import math

from src.tastematch.domain_model import label
from src.tastematch.models import Explanation, ScoredCandidate, TraitVector
from src.tastematch.scoring.composite import formula, weighted_total
from src.tastematch.scoring.traits import axis_gaps, top_axes
from src.tastematch.vectors import round_half_up

logger = logging.getLogger(__name__)

_SHORT_LEADS: dict[str, str] = {
    "item": "Fits your {axes}",
    "person": "You both share {axes}",
    "event": "Matches your {axes}",
    "hobby": "Suits your {axes}",
}

_SUBJECTS: dict[str, str] = {
    "item": "This pick",
    "person": "This match",
    "event": "This event",
    "hobby": "This hobby",
}

_MUTUAL_NOUNS: dict[str, tuple[str, str]] = {
    "event": ("friend going", "friends going"),
}
_DEFAULT_MUTUAL = ("shared interest", "shared interests")


def _join(words: list[str]) -> str:
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    return ", ".join(words[:-1]) + " and " + words[-1]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def short_rationale(
    candidate: ScoredCandidate,
    requester: TraitVector,
    target: TraitVector,
) -> str:
    closest = [label(g.axis) for g in axis_gaps(requester, target)[:2]]
    lead = _SHORT_LEADS.get(candidate.kind, "Fits your {axes}").format(axes=_join(closest))
    clauses = [lead]

    cf = candidate.cf
    if cf is not None and cf.loved_by_count:
        clauses.append(f"loved by {_plural(cf.loved_by_count, 'taste-neighbor')}")
    if candidate.mutual_count:
        singular, plural = _MUTUAL_NOUNS.get(candidate.kind, _DEFAULT_MUTUAL)
        noun = singular if candidate.mutual_count == 1 else plural
        clauses.append(f"{candidate.mutual_count} {noun}")
    if candidate.sub_scores.urgency and candidate.urgency_label:
        clauses.append(candidate.urgency_label)
    if candidate.distance_bucket:
        clauses.append(f"{candidate.distance_bucket} away")
    return "; ".join(clauses)


def long_rationale(
    candidate: ScoredCandidate,
    requester: TraitVector,
    target: TraitVector,
    target_label: str | None = None,
) -> str:
    mine = top_axes(requester, 3)
    theirs = top_axes(target, 2)
    overlap = [axis for axis in mine if axis in theirs]
    subject = target_label or _SUBJECTS.get(candidate.kind, "This pick")

    sentences = [f"Your strongest traits are {_join([label(a) for a in mine])}."]
    if overlap:
        sentences.append(f"{subject} leans into your {_join([label(a) for a in overlap])}.")
    else:
        sentences.append(
            f"{subject} complements you with {_join([label(a) for a in theirs])}."
        )

    cf = candidate.cf
    if cf is not None and cf.contributor_ids:
        names = list(cf.top_neighbor_names)
        others = len(cf.contributor_ids) - len(names)
        similarity = cf.avg_neighbor_similarity
        closeness = (
            f" ({round_half_up(similarity * 100)}% average similarity)"
            if math.isfinite(similarity) else ""
        )
        if names:
            who = _join(names + ([_plural(others, "other")] if others > 0 else []))
        else:
            who = _plural(len(cf.contributor_ids), "person")
        sentences.append(
            f"{who} with similar taste{closeness} engaged with it."
        )

    if candidate.mutual_labels:
        sentences.append(f"You share {_join(candidate.mutual_labels)}.")
    return " ".join(sentences)


def audit_trail(candidate: ScoredCandidate) -> str:
    if candidate.terms:
        total = weighted_total(candidate.terms)
        parts = [f"score = {formula(candidate.terms)} = {candidate.score}"]
        if round_half_up(total) != candidate.score:
            parts.append(f"clamped from {total:.2f}")
    else:
        parts = [f"score = {candidate.score}"]
    parts.append(f"method={candidate.scoring_method}")
    if candidate.fallback_reason:
        parts.append(f"fallback: {candidate.fallback_reason}")
    return "; ".join(parts)


def generate_explanation(
    candidate: ScoredCandidate,
    requester: TraitVector | None,
    target: TraitVector | None,
    *,
    target_label: str | None = None,
) -> Explanation:
    """Generate the short, long and audit strings for one candidate."""
    if requester is None:
        requester = TraitVector()
    if target is None:
        target = TraitVector()
    explanation = Explanation(
        short=short_rationale(candidate, requester, target),
        long=long_rationale(candidate, requester, target, target_label),
        audit=audit_trail(candidate),
    )
    logger.debug("Explanation %s: %s | %s", candidate.target_id, explanation.short, explanation.audit)
    return explanation
