"""Composite ranker — bounded weighted sum of per-signal scores."""

from __future__ import annotations

from src.tastematch.models import FusionTerm
from src.tastematch.vectors import clamp_score


def weighted_total(terms: list[FusionTerm]) -> float:
    return sum(t.score * t.weight for t in terms)


def composite_score(terms: list[FusionTerm]) -> int:
    return clamp_score(weighted_total(terms))


def formula(terms: list[FusionTerm]) -> str:
    """Literal weighted sum, e.g. ``round(95*0.60 + 70*0.40)``."""
    return "round(" + " + ".join(f"{t.score}*{t.weight:.2f}" for t in terms) + ")"
