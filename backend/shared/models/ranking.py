"""Data model for the rankings table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RankingEntry:
    """Cumulative points for one identified submitter."""

    id: int
    user_id: str
    name: str
    points: float = 0
    rank: int = 0  # derived: 1 + count(entries with strictly more points)
    email: str | None = None
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
