"""Semantic embedding service using sentence-transformers.

One ``EmbeddingService`` is built at process start and passed to whatever
needs embeddings.  The model loads lazily on first use behind a lock, so
concurrent first callers trigger exactly one load.  Load or inference
failures are reported as "unavailable" (``None``), which callers treat the
same as "never computed".
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Mapping, Sequence

import numpy as np

from src.tastematch.config import settings
from src.tastematch.models import Interaction
from src.tastematch.vectors import is_valid, weighted_average

logger = logging.getLogger(__name__)

MAX_TEXT_CHARS = 8000

# Failures a model load or encode call may raise; anything else is a bug.
_UNAVAILABLE_ERRORS = (ImportError, OSError, RuntimeError, ValueError, MemoryError)


def _load_sentence_transformer(model_name: str) -> Any:
    from sentence_transformers import SentenceTransformer
    return SentenceTransformer(model_name)


class EmbeddingService:
    def __init__(
        self,
        model_name: str | None = None,
        *,
        loader: Callable[[str], Any] | None = None,
        batch_size: int | None = None,
    ):
        self.model_name = model_name or settings.embedding_model
        self.batch_size = batch_size or settings.embedding_batch_size
        self._loader = loader or _load_sentence_transformer
        self._model: Any = None
        self._lock = threading.Lock()
        self._cache: dict[str, list[float]] = {}

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def _load_model(self) -> Any:
        model = self._model
        if model is not None:
            return model
        with self._lock:
            if self._model is None:
                self._model = self._loader(self.model_name)
                logger.info("Loaded sentence-transformer model: %s", self.model_name)
            return self._model

    def _to_vector(self, raw: Any) -> list[float] | None:
        values = np.asarray(raw, dtype=float).tolist()
        if not is_valid(values):
            logger.warning(
                "Model %s produced a %d-dim vector; expected %d",
                self.model_name, len(values), settings.embedding_dim,
            )
            return None
        return values

    def embed(self, text: str) -> list[float] | None:
        text = text[:MAX_TEXT_CHARS]
        if text in self._cache:
            return self._cache[text]
        try:
            model = self._load_model()
            raw = model.encode(text, show_progress_bar=False, normalize_embeddings=True)
        except _UNAVAILABLE_ERRORS as exc:
            logger.warning("Embedding unavailable (%s): %s", self.model_name, exc)
            return None
        vec = self._to_vector(raw)
        if vec is not None:
            self._cache[text] = vec
        return vec

    def embed_batch(self, texts: Sequence[str]) -> list[list[float] | None]:
        """Embed ``texts`` in strictly sequential batches of ``batch_size``.

        A failed batch yields ``None`` for each of its texts; later batches
        are still attempted.
        """
        results: list[list[float] | None] = []
        for start in range(0, len(texts), self.batch_size):
            chunk = [t[:MAX_TEXT_CHARS] for t in texts[start:start + self.batch_size]]
            try:
                model = self._load_model()
                raw = model.encode(
                    chunk,
                    batch_size=self.batch_size,
                    show_progress_bar=False,
                    normalize_embeddings=True,
                )
            except _UNAVAILABLE_ERRORS as exc:
                logger.warning(
                    "Embedding batch %d-%d unavailable: %s", start, start + len(chunk), exc,
                )
                results.extend([None] * len(chunk))
                continue
            for text, row in zip(chunk, raw):
                vec = self._to_vector(row)
                if vec is not None:
                    self._cache[text] = vec
                results.append(vec)
        logger.info(
            "Embedded %d texts (%d available)",
            len(texts), sum(1 for r in results if r is not None),
        )
        return results

    def reset(self) -> None:
        self._cache.clear()


def build_embedding_text(
    title: str,
    tags: Iterable[str] | None = None,
    description: str | None = None,
) -> str:
    parts = [title]
    tags = list(tags or [])
    if tags:
        parts.append(f"Tags: {', '.join(tags)}")
    if description:
        parts.append(description)
    return ". ".join(parts)[:MAX_TEXT_CHARS]


def recompute_profile_embedding(
    interactions: Iterable[Interaction],
    entity_embeddings: Mapping[str, Sequence[float] | None],
    limit: int | None = None,
) -> list[float] | None:
    """Signed weighted mean of the embeddings a user recently interacted with.

    Loves pull the profile towards loved content, skips push it away.  Only
    the ``limit`` most recent interactions whose target has a valid embedding
    count.  ``None`` means the history is degenerate; callers keep the
    previous profile embedding.
    """
    limit = settings.profile_history_limit if limit is None else limit
    if limit <= 0:
        return None
    recent = sorted(interactions, key=lambda i: i.created_at, reverse=True)
    vectors: list[Sequence[float]] = []
    weights: list[float] = []
    for interaction in recent:
        emb = entity_embeddings.get(interaction.target_id)
        if not is_valid(emb):
            continue
        vectors.append(emb)
        weights.append(interaction.weight)
        if len(vectors) >= limit:
            break
    if not vectors:
        return None
    return weighted_average(vectors, weights)
