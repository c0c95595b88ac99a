"""Unit tests for the Hybrid Scorer — no model downloads, synthetic embeddings."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import numpy as np

from src.tastematch.config import settings
from src.tastematch.models import (
    TRAIT_AXES,
    CFCandidate,
    ContentEntity,
    GeoPoint,
    Profile,
    TraitVector,
)
from src.tastematch.scoring.hybrid import (
    resolve_cf_signal,
    resolve_geo_signal,
    resolve_urgency_signal,
    resolve_vector_signal,
    score_event,
    score_hobby,
    score_item,
    score_person,
)

DIM = 384
NOW = datetime(2027, 1, 1, tzinfo=timezone.utc)
LISBON = GeoPoint(lat=38.7223, lng=-9.1393)


def _vec(*head: float) -> list[float]:
    v = np.zeros(DIM)
    v[:len(head)] = head
    return v.tolist()


def _at_similarity(s: float) -> list[float]:
    """Unit vector whose cosine with ``_vec(1.0)`` is ``s``."""
    return _vec(s, math.sqrt(1.0 - s * s))


def _make_profile(
    pid: str = "me",
    traits: TraitVector | None = None,
    embedding: list[float] | None = None,
    clusters: list[str] | None = None,
    location: GeoPoint | None = None,
) -> Profile:
    return Profile(
        id=pid,
        display_name=pid.title(),
        traits=traits or TraitVector(),
        embedding=embedding,
        clusters=clusters or [],
        onboarding_complete=True,
        location=location,
    )


def _make_entity(
    eid: str = "x",
    kind: str = "item",
    traits: TraitVector | None = None,
    embedding: list[float] | None = None,
    **extra,
) -> ContentEntity:
    return ContentEntity(
        id=eid, kind=kind, title=eid, domain="movies",
        traits=traits or TraitVector(), embedding=embedding, **extra,
    )


class TestSignalResolution:
    def test_vector_fallbacks(self):
        assert resolve_vector_signal(None, _vec(1.0)).reason == "requester has no usable embedding"
        assert resolve_vector_signal(_vec(1.0), [0.1] * 100).reason == "target has no usable embedding"

    def test_vector_value(self):
        sig = resolve_vector_signal(_vec(1.0), _at_similarity(0.8))
        assert sig.value == 90
        assert not sig.is_fallback

    def test_cf_absent(self):
        sig = resolve_cf_signal("x", {})
        assert sig.is_fallback
        assert sig.value is None

    def test_cf_neutral_when_untouched(self):
        sig = resolve_cf_signal("x", {"y": 80})
        assert sig == (settings.neutral_cf_score, False, None, None)

    def test_geo_missing(self):
        sig = resolve_geo_signal(None, LISBON)
        assert sig.value == 50
        assert sig.is_fallback

    def test_urgency_missing(self):
        sig = resolve_urgency_signal([], NOW)
        assert sig.value == 0
        assert sig.is_fallback
        assert sig.reason == "no deadline"

    def test_urgency_all_past(self):
        sig = resolve_urgency_signal([NOW - timedelta(hours=1)], NOW)
        assert sig.value == 0
        assert sig.reason == "past"


class TestWeights:
    def test_tuples_sum_to_one(self):
        s = settings
        assert abs(s.item_weights.vector + s.item_weights.collaborative + s.item_weights.traits - 1.0) < 1e-9
        assert abs(sum(s.item_weights.without_collaborative()) - 1.0) < 1e-9
        assert abs(s.social_weights.vector + s.social_weights.traits - 1.0) < 1e-9
        assert abs(s.event_weights.vector + s.event_weights.traits + s.event_weights.geo - 1.0) < 1e-9
        assert abs(s.hobby_weights.vector + s.hobby_weights.traits - 1.0) < 1e-9

    def test_redistributed_item_weights(self):
        vector, traits = settings.item_weights.without_collaborative()
        assert abs(vector - 0.70) < 1e-9
        assert abs(traits - 0.30) < 1e-9


class TestScorePerson:
    def test_hybrid_fusion(self):
        # vec 95, trait 70 -> round(95 * 0.6 + 70 * 0.4) = 85
        me = _make_profile("me", TraitVector(novelty=0.2), _vec(1.0))
        other = _make_profile("jo", TraitVector(novelty=0.8), _at_similarity(0.9))
        c = score_person(me, other)
        assert c.sub_scores.vector == 95
        assert c.sub_scores.traits == 70
        assert c.score == 85
        assert c.scoring_method == "hybrid"
        assert c.color == "green"
        assert c.reasons[0] == "Deep taste alignment detected by AI analysis"

    def test_trait_only_without_embedding(self):
        me = _make_profile("me", TraitVector(novelty=0.2), _vec(1.0))
        other = _make_profile("jo", TraitVector(novelty=0.8))
        c = score_person(me, other)
        assert c.score == 70
        assert c.scoring_method == "trait-only"
        assert c.fallback_reason == "target has no usable embedding"
        assert c.sub_scores.vector is None

    def test_wrong_dimension_is_absent(self):
        me = _make_profile("me", embedding=[0.1] * 100)
        other = _make_profile("jo", embedding=_vec(1.0))
        c = score_person(me, other)
        assert c.scoring_method == "trait-only"
        assert c.score == 100

    def test_mutual_clusters(self):
        me = _make_profile("me", clusters=["Adventurer", "Innovator"])
        other = _make_profile("jo", clusters=["Innovator", "Thrill Seeker"])
        c = score_person(me, other)
        assert c.mutual_count == 1
        assert c.mutual_labels == ["Innovator"]


class TestScoreItem:
    def test_embedding_mode_without_cf(self):
        # vec 90, trait 100 -> round(90 * 0.7 + 100 * 0.3) = 93
        me = _make_profile(embedding=_vec(1.0))
        item = _make_entity(embedding=_at_similarity(0.8))
        c = score_item(me, item)
        assert c.score == 93
        assert c.scoring_method == "embedding"
        assert c.fallback_reason == "no collaborative-filtering data"
        assert c.sub_scores.collaborative is None
        assert [t.signal for t in c.terms] == ["vector", "traits"]

    def test_hybrid_with_cf(self):
        # vec 95, cf 100, trait 70 -> round(52.25 + 25 + 14) = 91
        me = _make_profile(traits=TraitVector(novelty=0.2), embedding=_vec(1.0))
        item = _make_entity(traits=TraitVector(novelty=0.8), embedding=_at_similarity(0.9))
        attribution = {"x": CFCandidate(target_id="x", score=2.4, loved_by_count=2)}
        c = score_item(me, item, {"x": 100}, attribution)
        assert c.score == 91
        assert c.scoring_method == "hybrid"
        assert c.cf == attribution["x"]
        assert "Liked by people with similar taste" in c.reasons

    def test_neutral_cf_for_unscored_item(self):
        # vec 95, cf 50, trait 70 -> round(52.25 + 12.5 + 14) = 79
        me = _make_profile(traits=TraitVector(novelty=0.2), embedding=_vec(1.0))
        item = _make_entity(traits=TraitVector(novelty=0.8), embedding=_at_similarity(0.9))
        c = score_item(me, item, {"other": 100})
        assert c.sub_scores.collaborative == 50
        assert c.score == 79
        assert c.scoring_method == "hybrid"
        assert c.cf is None

    def test_trait_only(self):
        me = _make_profile(traits=TraitVector(novelty=0.9))
        item = _make_entity(embedding=_vec(1.0))
        c = score_item(me, item, {"x": 100})
        assert c.score == 80
        assert c.scoring_method == "trait-only"
        assert c.fallback_reason == "requester has no usable embedding"
        assert c.reasons == ["Matches your intensity preferences"]


class TestScoreEvent:
    def test_full_hybrid(self):
        # vec 90, trait 100, geo 100 -> 45 + 25 + 25 = 95
        me = _make_profile(embedding=_vec(1.0), location=LISBON)
        event = _make_entity(
            "ev", "event", embedding=_at_similarity(0.8), location=LISBON,
            signup_deadline=NOW + timedelta(hours=24), attendee_ids=["a", "b", "c"],
        )
        c = score_event(me, event, now=NOW, friend_ids={"b", "c", "z"})
        assert c.score == 95
        assert c.scoring_method == "hybrid"
        assert c.fallback_reason is None
        assert c.sub_scores.geo == 100
        assert c.sub_scores.urgency == 100
        assert c.urgency_label == "last chance"
        assert c.distance_bucket == "< 1 km"
        assert c.mutual_count == 2
        assert c.predicted_enjoyment == 94
        assert [t.signal for t in c.terms] == ["vector", "traits", "geo"]
        assert "Conveniently located < 1 km away" in c.reasons

    def test_missing_coordinates_use_neutral_geo(self):
        # vec 95, trait 100, geo 50 -> 47.5 + 25 + 12.5 = 85
        me = _make_profile(embedding=_vec(1.0))
        event = _make_entity("ev", "event", embedding=_at_similarity(0.9), location=LISBON)
        c = score_event(me, event, now=NOW)
        assert c.score == 85
        assert c.sub_scores.geo == 50
        assert c.fallback_reason == "missing coordinates"
        assert c.distance_bucket is None
        assert c.urgency_label == "no deadline"

    def test_explicit_origin_overrides_profile(self):
        porto = GeoPoint(lat=41.1579, lng=-8.6291)
        me = _make_profile(embedding=_vec(1.0), location=porto)
        event = _make_entity("ev", "event", embedding=_at_similarity(0.8), location=LISBON)
        c = score_event(me, event, origin=LISBON, now=NOW)
        assert c.sub_scores.geo == 100

    def test_trait_only_keeps_context(self):
        me = _make_profile(traits=TraitVector(novelty=0.9), location=LISBON)
        event = _make_entity(
            "ev", "event", location=LISBON,
            starts_at=NOW + timedelta(hours=60), attendee_ids=["b"],
        )
        c = score_event(me, event, now=NOW, friend_ids=["b"])
        assert c.score == 80
        assert c.scoring_method == "trait-only"
        assert c.sub_scores.geo is None
        assert c.sub_scores.urgency == 75
        assert c.distance_bucket == "< 1 km"
        assert c.mutual_count == 1
        assert c.predicted_enjoyment == 80


class TestScoreHobby:
    def test_hybrid(self):
        # vec 95, trait 100 -> round(52.25 + 45) = 97
        me = _make_profile(embedding=_vec(1.0))
        hobby = _make_entity("h", "hobby", embedding=_at_similarity(0.9))
        c = score_hobby(me, hobby)
        assert c.score == 97
        assert c.reasons[0].startswith("AI analysis shows strong alignment. ")

    def test_trait_only(self):
        t = TraitVector(creativity=0.9, cozy=0.8)
        c = score_hobby(_make_profile(traits=t), _make_entity("h", "hobby", traits=t))
        assert c.score == 100
        assert c.scoring_method == "trait-only"
        assert c.reasons == ["Aligns with your cozy preference and creative spirit tendencies"]


class TestBounds:
    def test_all_modes_stay_in_range(self):
        rng = np.random.default_rng(7)
        for _ in range(40):
            t_a = TraitVector(**{a.value: float(rng.random()) for a in TRAIT_AXES})
            t_b = TraitVector(**{a.value: float(rng.random()) for a in TRAIT_AXES})
            e_a = rng.normal(size=DIM).tolist()
            e_b = rng.normal(size=DIM).tolist() if rng.random() > 0.3 else None
            me = _make_profile(traits=t_a, embedding=e_a, location=LISBON)
            other = _make_profile("o", traits=t_b, embedding=e_b)
            entity = _make_entity(
                traits=t_b, embedding=e_b,
                location=GeoPoint(lat=float(rng.uniform(-60, 60)), lng=float(rng.uniform(-170, 170))),
            )
            results = [
                score_person(me, other),
                score_item(me, entity, {"x": int(rng.integers(15, 101))}),
                score_item(me, entity),
                score_event(me, entity.model_copy(update={"kind": "event"}), now=NOW),
                score_hobby(me, entity.model_copy(update={"kind": "hobby"})),
            ]
            for c in results:
                assert 15 <= c.score <= 100
                assert isinstance(c.score, int)
