"""Unit tests for collaborative filtering and the in-memory neighbour index."""

from __future__ import annotations

import math

import numpy as np
import pytest

from src.tastematch.models import Interaction, Neighbor, Profile
from src.tastematch.neighbors import InMemoryNeighborIndex
from src.tastematch.scoring.collaborative import (
    Contribution,
    cf_candidates,
    fold_contributions,
    neighbor_contributions,
    normalize_cf_scores,
)

DIM = 384


def _vec(*head: float) -> list[float]:
    v = np.zeros(DIM)
    v[:len(head)] = head
    return v.tolist()


def _make_profile(pid: str, embedding: list[float] | None, name: str = "", onboarded: bool = True) -> Profile:
    return Profile(id=pid, display_name=name, embedding=embedding, onboarding_complete=onboarded)


def _act(actor: str, target: str, action: str, domain: str = "movies") -> Interaction:
    return Interaction(actor_id=actor, target_id=target, domain=domain, action=action)


USER = _make_profile("u", _vec(1.0), "Me")
NINA = _make_profile("nina", _vec(0.9, math.sqrt(0.19)), "Nina")
QUIET = _make_profile("quiet", _vec(0.6, 0.8))
FAR = _make_profile("far", _vec(0.0, 0.0, 1.0), "Far")
PENDING = _make_profile("pending", _vec(1.0), "Pending", onboarded=False)

INTERACTIONS = [
    _act("nina", "A", "love"),
    _act("quiet", "A", "like"),
    _act("nina", "B", "skip"),
    _act("quiet", "C", "view"),
    _act("u", "D", "love"),
    _act("nina", "D", "love"),
    _act("nina", "E", "love", domain="music"),
    _act("far", "F", "love"),
    _act("pending", "H", "love"),
    _act("u", "G", "view", domain="music"),
    _act("nina", "G", "love"),
]


def _index() -> InMemoryNeighborIndex:
    return InMemoryNeighborIndex([USER, NINA, QUIET, FAR, PENDING])


class _StaticIndex:
    """Returns a fixed neighbour list regardless of threshold or limit."""

    def __init__(self, neighbors: list[Neighbor]):
        self.neighbors = neighbors

    def nearest(self, embedding, *, threshold, limit, exclude_id=None):
        return list(self.neighbors)


class TestNeighborIndex:
    def test_only_onboarded_with_embedding(self):
        index = InMemoryNeighborIndex([USER, NINA, PENDING, _make_profile("x", None)])
        assert len(index) == 2

    def test_threshold_is_strict_and_self_excluded(self):
        found = _index().nearest(USER.embedding, threshold=0.3, limit=20, exclude_id="u")
        assert [n.profile_id for n in found] == ["nina", "quiet"]
        assert abs(found[0].similarity - 0.9) < 1e-9

    def test_limit(self):
        found = _index().nearest(USER.embedding, threshold=0.3, limit=1, exclude_id="u")
        assert [n.profile_id for n in found] == ["nina"]

    def test_invalid_query(self):
        assert _index().nearest([1.0, 0.0], threshold=0.3, limit=5) == []


class TestContributions:
    def test_action_weight_from_table(self):
        c = Contribution("A", "nina", 0.5, "love", 9.0)
        assert c.action_weight == 2.0
        assert abs(c.value - 1.0) < 1e-9

    def test_filters(self):
        neighbors = [Neighbor(profile_id="nina", similarity=0.9)]
        contributions = neighbor_contributions("u", "movies", neighbors, INTERACTIONS)
        # B is a skip, D and G were touched by the user, E is another domain
        assert [c.target_id for c in contributions] == ["A"]

    def test_fold_is_read_only(self):
        neighbors = [Neighbor(profile_id="nina", display_name="Nina", similarity=0.9)]
        folded = fold_contributions([Contribution("A", "nina", 0.9, "love", 2.0)], neighbors)
        assert list(folded) == ["A"]
        with pytest.raises(TypeError):
            folded["Z"] = None


class TestCFCandidates:
    def test_aggregation_and_attribution(self):
        result = cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS)
        assert result.neighbor_count == 2
        assert [c.target_id for c in result.candidates] == ["A", "C"]

        a = result.by_target()["A"]
        assert abs(a.score - (0.9 * 2.0 + 0.6 * 1.0)) < 1e-9
        assert a.loved_by_count == 2
        assert a.avg_neighbor_similarity == 0.75
        assert a.contributor_ids == ("nina", "quiet")
        assert a.top_neighbor_names == ("Nina", "Someone")

        c = result.by_target()["C"]
        assert c.loved_by_count == 0

    def test_never_recommends_touched_targets(self):
        result = cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS)
        touched = {i.target_id for i in INTERACTIONS if i.actor_id == "u"}
        assert not touched & {c.target_id for c in result.candidates}

    def test_skip_only_targets_excluded(self):
        result = cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS)
        assert "B" not in result.by_target()

    def test_non_neighbours_ignored(self):
        result = cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS)
        assert "F" not in result.by_target()
        assert "H" not in result.by_target()

    def test_cap(self):
        result = cf_candidates(
            "u", "movies", USER.embedding, _index(), INTERACTIONS, max_candidates=1,
        )
        assert [c.target_id for c in result.candidates] == ["A"]

    def test_no_embedding_means_no_cf(self):
        result = cf_candidates("u", "movies", None, _index(), INTERACTIONS)
        assert result.empty
        assert result.neighbor_count == 0

    def test_no_neighbours(self):
        lonely = InMemoryNeighborIndex([USER, FAR])
        assert cf_candidates("u", "movies", USER.embedding, lonely, INTERACTIONS).empty

    def test_non_finite_similarity_ignored(self):
        index = _StaticIndex([
            Neighbor(profile_id="nina", display_name="Nina", similarity=float("nan")),
            Neighbor(profile_id="quiet", similarity=0.6),
        ])
        result = cf_candidates("u", "movies", USER.embedding, index, INTERACTIONS)
        assert result.neighbor_count == 1
        assert [c.target_id for c in result.candidates] == ["A", "C"]
        a = result.by_target()["A"]
        assert a.contributor_ids == ("quiet",)
        assert a.avg_neighbor_similarity == 0.6

    def test_only_non_finite_neighbours(self):
        index = _StaticIndex([
            Neighbor(profile_id="nina", similarity=float("nan")),
            Neighbor(profile_id="quiet", similarity=float("inf")),
        ])
        result = cf_candidates("u", "movies", USER.embedding, index, INTERACTIONS)
        assert result.empty
        assert result.neighbor_count == 0

    def test_zero_limits_are_respected(self):
        assert cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS, top_n=0).empty
        capped = cf_candidates(
            "u", "movies", USER.embedding, _index(), INTERACTIONS, max_candidates=0,
        )
        assert capped.neighbor_count == 2
        assert capped.candidates == ()

    def test_top_n_enforced_on_collaborator_results(self):
        index = _StaticIndex([
            Neighbor(profile_id="nina", similarity=0.9),
            Neighbor(profile_id="quiet", similarity=0.6),
        ])
        result = cf_candidates("u", "movies", USER.embedding, index, INTERACTIONS, top_n=1)
        assert result.neighbor_count == 1
        assert [c.target_id for c in result.candidates] == ["A"]


class TestNormalize:
    def test_relative_to_best(self):
        result = cf_candidates("u", "movies", USER.embedding, _index(), INTERACTIONS)
        scores = normalize_cf_scores(result)
        assert scores["A"] == 100
        # 0.6 * 0.3 / 2.4 -> 7.5, floored to the minimum score
        assert scores["C"] == 15

    def test_empty(self):
        lonely = InMemoryNeighborIndex([USER])
        assert normalize_cf_scores(cf_candidates("u", "movies", USER.embedding, lonely, [])) == {}
