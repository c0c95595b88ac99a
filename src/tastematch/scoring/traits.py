"""Trait Engine — compatibility over the eight fixed taste axes.

Score:  rms = sqrt(mean((a_i - b_i)^2)),  similarity = 1 - k * rms,
        score = clamp(round(similarity * 100), 15, 100)      (k = 1.4)

The amplification constant pushes moderate divergence towards the low end;
it lives in ``settings.rms_amplification``.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, NamedTuple

from src.tastematch.config import settings
from src.tastematch.domain_model import catalog_tags, label, tag_deltas
from src.tastematch.models import TRAIT_AXES, MatchColor, TraitAxis, TraitVector
from src.tastematch.vectors import clamp_score

logger = logging.getLogger(__name__)

HIGH_LEVEL = 0.7
MODERATE_LEVEL = 0.4
CONTRAST_THRESHOLD = 0.3
STRONG_AXIS = 0.6
TAG_SHARE = 0.6
QUIZ_SHARE = 0.4


class AxisGap(NamedTuple):
    axis: TraitAxis
    diff: float
    value_a: float
    value_b: float


class TraitMatch(NamedTuple):
    score: int
    color: MatchColor
    explanations: list[str]


def match_color(score: int) -> MatchColor:
    if score >= 75:
        return "green"
    if score >= 50:
        return "yellow"
    return "grey"


def distance_score(a: TraitVector, b: TraitVector) -> int:
    sum_sq = sum((a.value(axis) - b.value(axis)) ** 2 for axis in TRAIT_AXES)
    rms = math.sqrt(sum_sq / len(TRAIT_AXES))
    similarity = 1.0 - rms * settings.rms_amplification
    return clamp_score(similarity * 100.0)


def axis_gaps(a: TraitVector, b: TraitVector) -> list[AxisGap]:
    """Per-axis gaps, closest first; ties keep axis order (stable sort)."""
    gaps = [
        AxisGap(axis, abs(a.value(axis) - b.value(axis)), a.value(axis), b.value(axis))
        for axis in TRAIT_AXES
    ]
    return sorted(gaps, key=lambda g: g.diff)


def _level(avg: float) -> str:
    if avg > HIGH_LEVEL:
        return "high"
    if avg > MODERATE_LEVEL:
        return "moderate"
    return "low"


def pair_explanations(a: TraitVector, b: TraitVector) -> list[str]:
    gaps = axis_gaps(a, b)
    explanations = [
        f"Both have {_level((g.value_a + g.value_b) / 2)} {label(g.axis)}"
        for g in gaps[:3]
    ]
    furthest = gaps[-1]
    if furthest.diff > CONTRAST_THRESHOLD:
        explanations.append(f"Different perspectives on {label(furthest.axis)} add balance")
    return explanations


def match_score(a: TraitVector, b: TraitVector) -> TraitMatch:
    """Person-to-person trait compatibility with phrase-level rationale."""
    score = distance_score(a, b)
    return TraitMatch(score, match_color(score), pair_explanations(a, b))


def item_match(profile: TraitVector, entity: TraitVector) -> tuple[int, str]:
    score = distance_score(profile, entity)
    closest = axis_gaps(profile, entity)[0].axis
    return score, f"Matches your {label(closest)} preferences"


def hobby_match(profile: TraitVector, hobby: TraitVector) -> tuple[int, str]:
    score = distance_score(profile, hobby)
    strong = [
        label(axis) for axis in TRAIT_AXES
        if profile.value(axis) > STRONG_AXIS and hobby.value(axis) > STRONG_AXIS
    ]
    if strong:
        why = f"Aligns with your {' and '.join(strong[:2])} tendencies"
    else:
        why = "A balanced fit across your taste profile"
    return score, why


def top_axes(traits: TraitVector, n: int) -> list[TraitAxis]:
    """Highest-valued axes; ties keep axis order."""
    ranked = sorted(TRAIT_AXES, key=lambda axis: traits.value(axis), reverse=True)
    return ranked[:n]


def build_traits_from_selections(
    selections: Mapping[str, list[str]],
    quiz_scores: Mapping[str, float] | None = None,
) -> TraitVector:
    """Bootstrap a cold-start profile from onboarding picks and quiz answers.

    Every tag of every picked catalog entry contributes its trait deltas; each
    axis takes the mean of the deltas that hit it (0.5 if none did), blended
    60/40 with the quiz value for that axis (0.5 if unanswered).
    """
    quiz = TraitVector.from_mapping(quiz_scores)
    hits: dict[TraitAxis, list[float]] = {axis: [] for axis in TRAIT_AXES}

    for domain, picked in selections.items():
        for selection_id in picked:
            for tag in catalog_tags(domain, selection_id):
                for axis, delta in tag_deltas(tag).items():
                    hits[axis].append(delta)

    blended: dict[str, float] = {}
    for axis in TRAIT_AXES:
        values = hits[axis]
        tag_avg = sum(values) / len(values) if values else 0.5
        blended[axis.value] = tag_avg * TAG_SHARE + quiz.value(axis) * QUIZ_SHARE

    logger.debug(
        "Built traits from %d selections: %s",
        sum(len(v) for v in selections.values()), blended,
    )
    return TraitVector(**blended)
