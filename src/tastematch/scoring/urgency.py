"""Urgency — bucketed score from time left until the nearest future deadline.

Fully deterministic; ``now`` is always passed in.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from src.tastematch.models import UrgencyResult

logger = logging.getLogger(__name__)

# (max hours until deadline, score, label); first match wins.
URGENCY_BUCKETS: list[tuple[float, int, str]] = [
    (24, 100, "last chance"),
    (48, 90, "closing soon"),
    (72, 75, "this week"),
    (168, 50, "upcoming"),
    (336, 30, "next week"),
]
FAR_SCORE = 10
FAR_LABEL = "plenty of time"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def bucket(hours_until: float) -> tuple[int, str]:
    for limit, score, label in URGENCY_BUCKETS:
        if hours_until <= limit:
            return score, label
    return FAR_SCORE, FAR_LABEL


def urgency_score(
    deadlines: Iterable[datetime | None],
    now: datetime,
) -> UrgencyResult:
    """Score the earliest deadline strictly after ``now``.

    No deadlines at all -> 0 / "no deadline"; only past ones -> 0 / "past".
    """
    now = _as_utc(now)
    present = sorted(_as_utc(d) for d in deadlines if d is not None)
    if not present:
        return UrgencyResult(score=0, label="no deadline")

    upcoming = [d for d in present if d > now]
    if not upcoming:
        return UrgencyResult(score=0, label="past")

    nearest = upcoming[0]
    hours = (nearest - now).total_seconds() / 3600.0
    score, label = bucket(hours)
    logger.debug("Urgency: nearest=%s in %.2fh -> %d (%s)", nearest.isoformat(), hours, score, label)
    return UrgencyResult(score=score, label=label, hours_until=hours, deadline=nearest)
