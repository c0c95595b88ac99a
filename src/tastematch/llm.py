"""Centralized helpers for Anthropic LLM calls."""

from __future__ import annotations

import logging

from anthropic import Anthropic

from src.tastematch.config import settings

logger = logging.getLogger(__name__)


def make_client() -> Anthropic | None:
    if not settings.anthropic_api_key:
        logger.info("No Anthropic API key configured; narratives disabled")
        return None
    return Anthropic(api_key=settings.anthropic_api_key)


def call_llm_text(
    client: Anthropic,
    system: str,
    user: str,
    *,
    fast: bool = True,
    max_tokens: int = 300,
) -> str:
    model = settings.anthropic_fast_model if fast else settings.anthropic_model
    resp = client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": user}],
    )
    if not resp.content:
        logger.warning("LLM returned no content (%s model)", model)
        return ""
    return resp.content[0].text.strip()
