"""Optional narrative layer — asks Claude to retell the deterministic rationale.

The deterministic explanation stays the source of truth: the model only
rephrases facts it is given, and any API failure or empty reply falls back
to ``candidate.explanation.long``.
"""

from __future__ import annotations

import logging

from anthropic import Anthropic, APIError

from src.tastematch.llm import call_llm_text
from src.tastematch.models import ScoredCandidate

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """\
You write recommendation blurbs for a taste-matching app.
You receive a scored recommendation and its deterministic rationale and must
return a warm, specific, two-sentence explanation addressed to the user.

RULES:
- Use ONLY facts present in the input. Never invent names, numbers or places.
- Mention people by name only if they appear in the rationale.
- If the scoring method is "trait-only", do not claim AI or behavioural evidence.
- No emojis, no markdown, max 45 words.
"""


def _build_user_message(
    candidate: ScoredCandidate,
    requester_name: str,
    target_label: str,
) -> str:
    parts = [
        f"USER: {requester_name or 'the user'}",
        f"RECOMMENDED {candidate.kind.upper()}: {target_label}",
        f"Match score: {candidate.score}/100 (method: {candidate.scoring_method})",
        f"Short rationale: {candidate.explanation.short}",
        f"Long rationale: {candidate.explanation.long}",
    ]
    if candidate.reasons:
        parts.append(f"Signals: {'; '.join(candidate.reasons)}")
    if candidate.urgency_label and candidate.sub_scores.urgency:
        parts.append(f"Timing: {candidate.urgency_label}")
    if candidate.distance_bucket:
        parts.append(f"Distance: {candidate.distance_bucket}")
    return "\n".join(parts)


def narrate(
    client: Anthropic,
    candidate: ScoredCandidate,
    requester_name: str,
    target_label: str,
) -> str:
    user_msg = _build_user_message(candidate, requester_name, target_label)
    try:
        text = call_llm_text(client, _SYSTEM_PROMPT, user_msg)
    except APIError as exc:
        logger.warning("Narrative failed for %s: %s", candidate.target_id, exc)
        text = ""
    if not text:
        return candidate.explanation.long
    return text
