"""Time helpers. Services take a ``clock`` callable so tests can pin "now"."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def seconds_between(start: datetime | None, end: datetime) -> float:
    """Elapsed seconds from *start* to *end*; 0 when *start* is unknown."""
    if start is None:
        return 0.0
    return max(0.0, (end - start).total_seconds())
