"""Streamlit UI for exploring the TasteMatch scoring engine."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from src.tastematch.config import settings  # noqa: E402
from src.tastematch.domain_model import ONBOARDING_ITEMS  # noqa: E402
from src.tastematch.embeddings import EmbeddingService  # noqa: E402
from src.tastematch.engine import (  # noqa: E402
    embed_catalog,
    load_sample_catalog,
    match_people,
    narrate_top,
    onboard_profile,
    rank_events,
    rank_hobbies,
    recommend_items,
    refresh_profile_embedding,
)
from src.tastematch.llm import make_client  # noqa: E402
from src.tastematch.models import Catalog, Profile, ScoredCandidate  # noqa: E402
from src.tastematch.neighbors import InMemoryNeighborIndex  # noqa: E402

logging.basicConfig(level=logging.INFO)

st.set_page_config(page_title="TasteMatch", layout="wide")
st.title("TasteMatch — Hybrid Scoring Playground")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@st.cache_resource
def _embedding_service() -> EmbeddingService:
    return EmbeddingService()


@st.cache_resource
def _catalog(with_embeddings: bool) -> Catalog:
    catalog = load_sample_catalog()
    if not with_embeddings:
        return catalog
    entities = embed_catalog(_embedding_service(), catalog.entities)
    profiles = [
        refresh_profile_embedding(p, catalog.interactions, entities)
        for p in catalog.profiles
    ]
    return catalog.model_copy(update={"entities": entities, "profiles": profiles})


def _results_frame(results: list[ScoredCandidate], labels: dict[str, str]) -> pd.DataFrame:
    rows = []
    for rank, c in enumerate(results, 1):
        rows.append({
            "rank": rank,
            "target": labels.get(c.target_id, c.target_id),
            "score": c.score,
            "vector": c.sub_scores.vector,
            "cf": c.sub_scores.collaborative,
            "traits": c.sub_scores.traits,
            "geo": c.sub_scores.geo,
            "method": c.scoring_method,
            "why": c.explanation.short,
        })
    return pd.DataFrame(rows)


def _render(results: list[ScoredCandidate], labels: dict[str, str], requester: Profile) -> None:
    if not results:
        st.info("Nothing to rank.")
        return
    if st.session_state.get("narrate"):
        client = make_client()
        if client is not None:
            results = narrate_top(results[:3], client, requester.display_name, labels) + results[3:]
    st.dataframe(_results_frame(results, labels), use_container_width=True, hide_index=True)
    for c in results:
        with st.expander(f"{labels.get(c.target_id, c.target_id)} — {c.score} ({c.color})"):
            st.markdown(c.narrative or c.explanation.long)
            for reason in c.reasons:
                st.markdown(f"- {reason}")
            st.code(c.explanation.audit, language=None)


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.header("Settings")
    use_embeddings = st.checkbox(
        f"Embed catalog ({settings.embedding_model})", value=False,
        help="Loads the sentence-transformer model; without it every score is trait-only.",
    )
    st.session_state["narrate"] = st.checkbox(
        "Narrate top 3 with Claude", value=False,
        disabled=not settings.anthropic_api_key,
    )
    if not settings.anthropic_api_key:
        st.caption("Set ANTHROPIC_API_KEY in `.env` to enable narratives.")

catalog = _catalog(use_embeddings)
profiles = {p.id: p for p in catalog.profiles}
entities = {e.id: e for e in catalog.entities}
labels = {**{e.id: e.title for e in catalog.entities}, **{p.id: p.display_name for p in catalog.profiles}}

with st.sidebar:
    requester_id = st.selectbox(
        "Requesting user", list(profiles), format_func=lambda pid: profiles[pid].display_name,
    )
    now = datetime.combine(
        st.date_input("Reference date", value=datetime(2027, 2, 28).date()),
        datetime.min.time(),
        tzinfo=timezone.utc,
    )

me = profiles[requester_id]


# ---------------------------------------------------------------------------
# Main tabs
# ---------------------------------------------------------------------------

tab_items, tab_people, tab_events, tab_hobbies, tab_onboard = st.tabs([
    "Items", "People", "Events", "Hobbies", "Onboarding",
])

with tab_items:
    domains = sorted({e.domain for e in catalog.entities if e.kind == "item"})
    domain = st.selectbox("Domain", domains)
    items = [e for e in catalog.entities if e.kind == "item" and e.domain == domain]
    index = InMemoryNeighborIndex(catalog.profiles)
    st.caption(f"{len(index)} profiles in the neighbour index")
    _render(
        recommend_items(me, items, catalog.interactions, domain=domain, neighbor_index=index),
        labels, me,
    )

with tab_people:
    _render(match_people(me, catalog.profiles), labels, me)

with tab_events:
    events = [e for e in catalog.entities if e.kind == "event"]
    friends = st.multiselect(
        "Friends", [pid for pid in profiles if pid != me.id],
        format_func=lambda pid: profiles[pid].display_name,
    )
    _render(rank_events(me, events, now=now, friend_ids=friends), labels, me)

with tab_hobbies:
    hobbies = [e for e in catalog.entities if e.kind == "hobby"]
    _render(rank_hobbies(me, hobbies), labels, me)

with tab_onboard:
    st.subheader("Cold-start profile from onboarding picks")
    with st.form("onboarding"):
        selections: dict[str, list[str]] = {}
        for cat, entries in ONBOARDING_ITEMS.items():
            options = [f"{cat}-{i}" for i in range(1, len(entries) + 1)]
            selections[cat] = st.multiselect(
                cat.title(), options,
                format_func=lambda sid, entries=entries: ", ".join(entries[int(sid.rsplit("-", 1)[1]) - 1]),
            )
        submitted = st.form_submit_button("Build profile")
    if submitted:
        profile = onboard_profile("preview", "You", selections)
        st.bar_chart(pd.Series(profile.traits.as_dict()))
        st.markdown(f"**Clusters:** {', '.join(profile.clusters) or '—'}")
