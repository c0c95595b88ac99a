"""Pydantic v2 data models — the data contracts flowing through the system."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

class TraitAxis(str, Enum):
    NOVELTY = "novelty"
    INTENSITY = "intensity"
    COZY = "cozy"
    STRATEGY = "strategy"
    SOCIAL = "social"
    CREATIVITY = "creativity"
    NOSTALGIA = "nostalgia"
    ADVENTURE = "adventure"


TRAIT_AXES: tuple[TraitAxis, ...] = tuple(TraitAxis)

EntityKind = Literal["item", "hobby", "event"]
CandidateKind = Literal["item", "person", "event", "hobby"]
Action = Literal["love", "save", "like", "view", "skip"]
ScoringMethod = Literal["hybrid", "embedding", "trait-only"]
MatchColor = Literal["green", "yellow", "grey"]

ACTION_WEIGHTS: dict[str, float] = {
    "love": 2.0,
    "save": 1.5,
    "like": 1.0,
    "view": 0.3,
    "skip": -0.5,
}

NEUTRAL_TRAIT = 0.5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Trait vector
# ---------------------------------------------------------------------------

class TraitVector(BaseModel):
    """Eight psychometric axes, each in [0, 1].

    Missing, ``None`` or NaN values collapse to the neutral 0.5 so they never
    leak into the distance math.
    """

    model_config = ConfigDict(frozen=True)

    novelty: float = NEUTRAL_TRAIT
    intensity: float = NEUTRAL_TRAIT
    cozy: float = NEUTRAL_TRAIT
    strategy: float = NEUTRAL_TRAIT
    social: float = NEUTRAL_TRAIT
    creativity: float = NEUTRAL_TRAIT
    nostalgia: float = NEUTRAL_TRAIT
    adventure: float = NEUTRAL_TRAIT

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_axis(cls, value: Any) -> float:
        if value is None or isinstance(value, str):
            return NEUTRAL_TRAIT
        try:
            number = float(value)
        except (TypeError, ValueError):
            return NEUTRAL_TRAIT
        if math.isnan(number):
            return NEUTRAL_TRAIT
        return min(max(number, 0.0), 1.0)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> TraitVector:
        if not data:
            return cls()
        return cls(**{axis.value: data[axis.value] for axis in TRAIT_AXES if axis.value in data})

    def value(self, axis: TraitAxis) -> float:
        return getattr(self, axis.value)

    def items(self) -> list[tuple[TraitAxis, float]]:
        return [(axis, self.value(axis)) for axis in TRAIT_AXES]

    def as_dict(self) -> dict[str, float]:
        return {axis.value: self.value(axis) for axis in TRAIT_AXES}


# ---------------------------------------------------------------------------
# Profiles, entities, interactions
# ---------------------------------------------------------------------------

class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class Profile(BaseModel):
    id: str
    display_name: str = ""
    traits: TraitVector = Field(default_factory=TraitVector)
    embedding: list[float] | None = None
    clusters: list[str] = Field(default_factory=list)
    onboarding_complete: bool = False
    location: GeoPoint | None = None


class ContentEntity(BaseModel):
    id: str
    kind: EntityKind = "item"
    title: str
    domain: str = ""
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    traits: TraitVector = Field(default_factory=TraitVector)
    embedding: list[float] | None = None
    location: GeoPoint | None = None

    signup_deadline: datetime | None = None
    dues_deadline: datetime | None = None
    starts_at: datetime | None = None
    next_meeting_at: datetime | None = None

    attendee_ids: list[str] = Field(default_factory=list)

    @field_validator(
        "signup_deadline", "dues_deadline", "starts_at", "next_meeting_at",
    )
    @classmethod
    def _naive_is_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def deadlines(self) -> list[datetime]:
        stamps = [
            self.signup_deadline,
            self.dues_deadline,
            self.starts_at,
            self.next_meeting_at,
        ]
        return sorted(s for s in stamps if s is not None)


class Interaction(BaseModel):
    actor_id: str
    target_id: str
    domain: str
    action: Action
    weight: float | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("created_at")
    @classmethod
    def _naive_is_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _default_weight(self) -> Interaction:
        if self.weight is None or math.isnan(self.weight):
            self.weight = ACTION_WEIGHTS[self.action]
        return self


class Catalog(BaseModel):
    profiles: list[Profile] = Field(default_factory=list)
    entities: list[ContentEntity] = Field(default_factory=list)
    interactions: list[Interaction] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Collaborative filtering
# ---------------------------------------------------------------------------

class Neighbor(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_id: str
    display_name: str = ""
    similarity: float


class CFCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_id: str
    score: float
    loved_by_count: int = 0
    avg_neighbor_similarity: float = 0.0
    contributor_ids: tuple[str, ...] = ()
    top_neighbor_names: tuple[str, ...] = ()


class CFResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidates: tuple[CFCandidate, ...] = ()
    neighbor_count: int = 0

    @property
    def empty(self) -> bool:
        return not self.candidates

    def by_target(self) -> dict[str, CFCandidate]:
        return {c.target_id: c for c in self.candidates}


# ---------------------------------------------------------------------------
# Urgency / geo
# ---------------------------------------------------------------------------

class UrgencyResult(BaseModel):
    score: int = 0
    label: str = "no deadline"
    hours_until: float | None = None
    deadline: datetime | None = None


class GeoResult(BaseModel):
    distance_km: float | None = None
    bucket: str | None = None
    bonus: int = 50


# ---------------------------------------------------------------------------
# Scoring / output types
# ---------------------------------------------------------------------------

class SignalScores(BaseModel):
    vector: int | None = None
    collaborative: int | None = None
    traits: int = 0
    geo: int | None = None
    urgency: int | None = None


class FusionTerm(BaseModel):
    signal: str
    score: int
    weight: float


class Explanation(BaseModel):
    short: str = ""
    long: str = ""
    audit: str = ""


class ScoredCandidate(BaseModel):
    target_id: str
    kind: CandidateKind
    score: int
    sub_scores: SignalScores
    terms: list[FusionTerm] = Field(default_factory=list)
    scoring_method: ScoringMethod = "trait-only"
    fallback_reason: str | None = None
    color: MatchColor = "grey"

    reasons: list[str] = Field(default_factory=list)
    distance_bucket: str | None = None
    urgency_label: str | None = None
    predicted_enjoyment: int | None = None
    cf: CFCandidate | None = None
    mutual_count: int = 0
    mutual_labels: list[str] = Field(default_factory=list)

    explanation: Explanation = Field(default_factory=Explanation)
    narrative: str | None = None
