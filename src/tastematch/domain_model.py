"""Deterministic taste model — the lookup tables behind the trait engine.

Three layers, no I/O, fully unit-testable:
  1. Axis labels used in every human-readable rationale
  2. Tag -> trait-delta map plus the onboarding catalog it is applied to
  3. Cluster rules (informational labels, never used in scoring math)
"""

from __future__ import annotations

import re

from src.tastematch.models import TraitAxis, TraitVector

# ---------------------------------------------------------------------------
# Layer 1 — Axis labels
# ---------------------------------------------------------------------------

TRAIT_LABELS: dict[TraitAxis, str] = {
    TraitAxis.NOVELTY: "Novelty Seeking",
    TraitAxis.INTENSITY: "Intensity",
    TraitAxis.COZY: "Cozy Preference",
    TraitAxis.STRATEGY: "Strategic Thinking",
    TraitAxis.SOCIAL: "Social Energy",
    TraitAxis.CREATIVITY: "Creative Spirit",
    TraitAxis.NOSTALGIA: "Nostalgia Pull",
    TraitAxis.ADVENTURE: "Adventure Drive",
}


def label(axis: TraitAxis) -> str:
    return TRAIT_LABELS[axis].lower()


# ---------------------------------------------------------------------------
# Layer 2 — Tag -> trait deltas
# ---------------------------------------------------------------------------

_RAW_TAG_TRAITS: dict[str, dict[str, float]] = {
    # movies
    "sci-fi": {"novelty": 0.8, "creativity": 0.7, "adventure": 0.6},
    "space": {"novelty": 0.9, "adventure": 0.8},
    "emotional": {"cozy": 0.6, "nostalgia": 0.5},
    "action": {"intensity": 0.8, "adventure": 0.7},
    "thriller": {"intensity": 0.7, "strategy": 0.6},
    "dark": {"intensity": 0.7, "novelty": 0.5},
    "anime": {"creativity": 0.7, "nostalgia": 0.6},
    "fantasy": {"creativity": 0.8, "adventure": 0.7, "nostalgia": 0.5},
    "magical": {"creativity": 0.9, "cozy": 0.6},
    "mind-bending": {"novelty": 0.9, "strategy": 0.7},
    "comedy": {"social": 0.6, "cozy": 0.5},
    "quirky": {"creativity": 0.8, "novelty": 0.7},
    "artistic": {"creativity": 0.9},
    "social": {"social": 0.8},
    "dark-comedy": {"intensity": 0.5, "creativity": 0.6},
    "epic": {"intensity": 0.7, "adventure": 0.8},
    "crime": {"intensity": 0.6, "strategy": 0.7},
    "dialogue": {"social": 0.5, "creativity": 0.6},
    "nonlinear": {"novelty": 0.8, "creativity": 0.7},
    "philosophical": {"novelty": 0.8, "strategy": 0.6},
    "superhero": {"adventure": 0.7, "intensity": 0.6},
    "fun": {"cozy": 0.5, "social": 0.6},
    "horror": {"intensity": 0.9, "novelty": 0.6},
    "suspense": {"intensity": 0.7, "strategy": 0.5},
    "cozy": {"cozy": 0.9, "social": 0.4},
    "nature": {"adventure": 0.6, "cozy": 0.5},
    # music
    "indie": {"creativity": 0.8, "novelty": 0.7},
    "creative": {"creativity": 0.9},
    "mellow": {"cozy": 0.7},
    "electronic": {"novelty": 0.6, "intensity": 0.6},
    "energy": {"intensity": 0.8, "adventure": 0.6},
    "beats": {"intensity": 0.5},
    "hip-hop": {"social": 0.6, "creativity": 0.5},
    "rhythm": {"intensity": 0.5},
    "lyrical": {"creativity": 0.7},
    "classical": {"creativity": 0.7, "nostalgia": 0.6, "strategy": 0.5},
    "elegant": {"creativity": 0.6},
    "complex": {"strategy": 0.7, "novelty": 0.6},
    "jazz": {"creativity": 0.8, "novelty": 0.6, "social": 0.5},
    "soulful": {"nostalgia": 0.6, "cozy": 0.5},
    "improvisation": {"creativity": 0.9, "novelty": 0.7},
    "rock": {"intensity": 0.7},
    "guitar": {"creativity": 0.5},
    "pop": {"social": 0.7},
    "catchy": {"cozy": 0.5},
    "mainstream": {"social": 0.6},
    "rnb": {"social": 0.5, "cozy": 0.6},
    "smooth": {"cozy": 0.7},
    "lofi": {"cozy": 0.8, "creativity": 0.5},
    "chill": {"cozy": 0.8},
    "atmospheric": {"creativity": 0.6},
    "kpop": {"social": 0.7, "intensity": 0.5},
    "energetic": {"intensity": 0.7},
    "visual": {"creativity": 0.6},
    "country": {"nostalgia": 0.7, "cozy": 0.6},
    "storytelling": {"creativity": 0.6},
    "acoustic": {"cozy": 0.7},
    "reggae": {"cozy": 0.7, "social": 0.5},
    "groove": {"social": 0.5},
    # games
    "rpg": {"strategy": 0.7, "adventure": 0.8},
    "exploration": {"adventure": 0.9, "novelty": 0.7},
    "story": {"creativity": 0.6, "nostalgia": 0.5},
    "fps": {"intensity": 0.9, "strategy": 0.5},
    "competitive": {"intensity": 0.8, "strategy": 0.7},
    "reaction": {"intensity": 0.7},
    "strategy": {"strategy": 0.9},
    "planning": {"strategy": 0.8},
    "puzzle": {"strategy": 0.7, "creativity": 0.6},
    "simulation": {"strategy": 0.5, "cozy": 0.6},
    "relaxing": {"cozy": 0.9},
    "fighting": {"intensity": 0.8},
    "skill": {"strategy": 0.6, "intensity": 0.6},
    "mmo": {"social": 0.9},
    "grinding": {"intensity": 0.5},
    "survival": {"intensity": 0.7, "adventure": 0.7},
    "crafting": {"creativity": 0.6},
    "narrative": {"creativity": 0.7, "nostalgia": 0.5},
    "cinematic": {"creativity": 0.6, "intensity": 0.5},
    "multiplayer": {"social": 0.8},
    "racing": {"intensity": 0.6},
    "sports": {"social": 0.5, "intensity": 0.5},
    "fast": {"intensity": 0.7},
    "retro": {"nostalgia": 0.9},
    "nostalgic": {"nostalgia": 0.9},
    "arcade": {"nostalgia": 0.7, "intensity": 0.5},
    # food
    "japanese": {"novelty": 0.6, "creativity": 0.5},
    "umami": {"novelty": 0.6},
    "precise": {"strategy": 0.5},
    "italian": {"cozy": 0.7, "nostalgia": 0.5},
    "comfort": {"cozy": 0.8},
    "classic": {"nostalgia": 0.6},
    "spicy": {"intensity": 0.8},
    "bold": {"intensity": 0.7, "novelty": 0.5},
    "aromatic": {"creativity": 0.5},
    "street-food": {"adventure": 0.6, "social": 0.5},
    "casual": {"cozy": 0.6},
    "diverse": {"novelty": 0.6},
    "vegan": {"novelty": 0.5, "creativity": 0.5},
    "health": {"strategy": 0.4},
    "bbq": {"social": 0.7, "cozy": 0.5},
    "smoky": {"intensity": 0.5},
    "hearty": {"cozy": 0.6},
    "french": {"creativity": 0.6},
    "refined": {"strategy": 0.5},
    "mexican": {"social": 0.6, "intensity": 0.5},
    "vibrant": {"creativity": 0.5, "intensity": 0.4},
    "korean": {"novelty": 0.6, "intensity": 0.5},
    "fermented": {"novelty": 0.7},
    "mediterranean": {"cozy": 0.5, "adventure": 0.4},
    "fresh": {"novelty": 0.4},
    "healthy": {"strategy": 0.4},
    "baking": {"cozy": 0.8, "creativity": 0.6},
    "sweet": {"cozy": 0.7},
    "artisan": {"creativity": 0.7},
    "quick": {"intensity": 0.4},
    # hobbies
    "outdoor": {"adventure": 0.8},
    "fitness": {"intensity": 0.6, "adventure": 0.5},
    "cooking": {"creativity": 0.6, "cozy": 0.7},
    "art": {"creativity": 0.9},
    "reading": {"nostalgia": 0.5, "creativity": 0.5},
    "intellectual": {"strategy": 0.6},
    "solitary": {"social": 0.2},
    "discipline": {"strategy": 0.6, "intensity": 0.5},
    "music": {"creativity": 0.7},
    "technical": {"strategy": 0.6},
    "patient": {"cozy": 0.6, "strategy": 0.4},
    "culture": {"novelty": 0.6, "social": 0.5},
    "hands-on": {"creativity": 0.6},
    "tech": {"strategy": 0.7, "novelty": 0.6},
    "problem-solving": {"strategy": 0.8},
    "logical": {"strategy": 0.8},
}

# Unknown axis names fail here, at import time.
TAG_TRAIT_MAP: dict[str, dict[TraitAxis, float]] = {
    tag: {TraitAxis(axis): value for axis, value in deltas.items()}
    for tag, deltas in _RAW_TAG_TRAITS.items()
}

ONBOARDING_ITEMS: dict[str, list[tuple[str, ...]]] = {
    "movies": [
        ("sci-fi", "space", "emotional"),
        ("action", "thriller", "dark"),
        ("anime", "fantasy", "magical"),
        ("sci-fi", "thriller", "mind-bending"),
        ("comedy", "quirky", "artistic"),
        ("thriller", "social", "dark-comedy"),
        ("fantasy", "epic", "adventure"),
        ("crime", "dialogue", "nonlinear"),
        ("sci-fi", "action", "philosophical"),
        ("anime", "cozy", "nature"),
        ("superhero", "action", "fun"),
        ("horror", "intense", "suspense"),
    ],
    "music": [
        ("indie", "creative", "mellow"),
        ("electronic", "energy", "beats"),
        ("hip-hop", "rhythm", "lyrical"),
        ("classical", "elegant", "complex"),
        ("jazz", "soulful", "improvisation"),
        ("rock", "intense", "guitar"),
        ("pop", "catchy", "mainstream"),
        ("rnb", "smooth", "emotional"),
        ("lofi", "chill", "atmospheric"),
        ("kpop", "energetic", "visual"),
        ("country", "storytelling", "acoustic"),
        ("reggae", "chill", "groove"),
    ],
    "games": [
        ("rpg", "exploration", "story"),
        ("fps", "competitive", "reaction"),
        ("strategy", "planning", "complex"),
        ("indie", "creative", "puzzle"),
        ("simulation", "cozy", "relaxing"),
        ("fighting", "competitive", "skill"),
        ("mmo", "social", "grinding"),
        ("survival", "crafting", "intense"),
        ("narrative", "emotional", "cinematic"),
        ("competitive", "action", "multiplayer"),
        ("racing", "sports", "fast"),
        ("retro", "nostalgic", "arcade"),
    ],
    "food": [
        ("japanese", "umami", "precise"),
        ("italian", "comfort", "classic"),
        ("spicy", "bold", "aromatic"),
        ("street-food", "casual", "diverse"),
        ("vegan", "health", "creative"),
        ("bbq", "smoky", "hearty"),
        ("french", "elegant", "refined"),
        ("mexican", "vibrant", "spicy"),
        ("korean", "fermented", "bold"),
        ("mediterranean", "fresh", "healthy"),
        ("baking", "sweet", "artisan"),
        ("comfort", "nostalgic", "quick"),
    ],
    "hobbies": [
        ("visual", "creative", "outdoor"),
        ("adventure", "nature", "fitness"),
        ("cooking", "creative", "cozy"),
        ("art", "creative", "visual"),
        ("strategy", "social", "fun"),
        ("reading", "intellectual", "solitary"),
        ("fitness", "discipline", "health"),
        ("music", "creative", "technical"),
        ("nature", "cozy", "patient"),
        ("adventure", "culture", "social"),
        ("crafting", "creative", "hands-on"),
        ("tech", "problem-solving", "logical"),
    ],
}

_SELECTION_NUMBER_RE = re.compile(r"[^0-9]")


def catalog_tags(domain: str, selection_id: str) -> tuple[str, ...]:
    """Tags of an onboarding pick; ids carry a 1-based position ("movies-3")."""
    digits = _SELECTION_NUMBER_RE.sub("", selection_id)
    if not digits:
        return ()
    idx = int(digits) - 1
    items = ONBOARDING_ITEMS.get(domain, [])
    if 0 <= idx < len(items):
        return items[idx]
    return ()


def tag_deltas(tag: str) -> dict[TraitAxis, float]:
    return TAG_TRAIT_MAP.get(tag, {})


# ---------------------------------------------------------------------------
# Layer 3 — Cluster rules
# ---------------------------------------------------------------------------

SINGLE_AXIS_THRESHOLD = 0.65
COMBO_THRESHOLD = 0.6
MAX_CLUSTERS = 5

SINGLE_AXIS_CLUSTERS: list[tuple[TraitAxis, str]] = [
    (TraitAxis.CREATIVITY, "Creative Thinker"),
    (TraitAxis.ADVENTURE, "Adventurer"),
    (TraitAxis.STRATEGY, "Strategic Mind"),
    (TraitAxis.NOVELTY, "Novelty Seeker"),
    (TraitAxis.COZY, "Comfort Connoisseur"),
    (TraitAxis.INTENSITY, "Thrill Seeker"),
    (TraitAxis.SOCIAL, "Social Butterfly"),
    (TraitAxis.NOSTALGIA, "Nostalgia Lover"),
]

COMBO_CLUSTERS: list[tuple[tuple[TraitAxis, TraitAxis], str]] = [
    ((TraitAxis.CREATIVITY, TraitAxis.NOVELTY), "Innovator"),
    ((TraitAxis.COZY, TraitAxis.NOSTALGIA), "Comfort Classic"),
    ((TraitAxis.INTENSITY, TraitAxis.STRATEGY), "Tactical Gamer"),
    ((TraitAxis.ADVENTURE, TraitAxis.SOCIAL), "Explorer"),
]


def generate_clusters(traits: TraitVector) -> list[str]:
    clusters: list[str] = []
    for axis, name in SINGLE_AXIS_CLUSTERS:
        if traits.value(axis) > SINGLE_AXIS_THRESHOLD:
            clusters.append(name)
    for (first, second), name in COMBO_CLUSTERS:
        if traits.value(first) > COMBO_THRESHOLD and traits.value(second) > COMBO_THRESHOLD:
            clusters.append(name)
    return list(dict.fromkeys(clusters))[:MAX_CLUSTERS]


def shared_clusters(a: list[str], b: list[str]) -> list[str]:
    mine = set(a)
    return [c for c in dict.fromkeys(b) if c in mine]

