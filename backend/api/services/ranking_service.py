"""Ranking aggregator: additive per-submitter points with a derived rank."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from services.broadcaster import EVENT_RANKING, Broadcaster
from shared.models.ranking import RankingEntry
from shared.repositories.ranking import RankingRepository

logger = logging.getLogger(__name__)

# Identity values that mean "no account"
ANONYMOUS_IDS = frozenset({"", "anonymous", "guest", "null", "undefined"})


def is_identified(user_id: str | None) -> bool:
    return bool(user_id) and user_id.strip().lower() not in ANONYMOUS_IDS


@dataclass
class RankingBoard:
    ranks: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0


class RankingService:
    def __init__(
        self,
        repo: RankingRepository,
        broadcaster: Broadcaster,
        *,
        broadcast_limit: int = 3,
    ) -> None:
        self.repo = repo
        self.broadcaster = broadcaster
        self.broadcast_limit = broadcast_limit

    async def add_points(
        self,
        user_id: str | None,
        name: str | None,
        amount: float | None,
        email: str | None = None,
        avatar: str | None = None,
    ) -> RankingEntry | None:
        """Credit *amount* to *user_id*. Anonymous or non-positive amounts are ignored.

        A blank *name* leaves an existing entry's name as it is.
        """
        if not is_identified(user_id) or amount is None or amount <= 0:
            return None
        entry = await self.repo.add_points(
            user_id.strip(),  # type: ignore[union-attr]
            (name or "").strip() or None,
            float(amount),
            email or None,
            avatar or None,
        )
        logger.info(f"Ranking: {entry.name} +{amount:g} -> {entry.points:g} (rank {entry.rank})")
        await self.publish_top()
        return entry

    async def get_top(self, limit: int) -> RankingBoard:
        entries = await self.repo.get_top(limit)
        total = await self.repo.count()
        ranks = [{**asdict(e), "position": i} for i, e in enumerate(entries, start=1)]
        return RankingBoard(ranks=ranks, total=total)

    async def publish_top(self) -> None:
        try:
            board = await self.get_top(self.broadcast_limit)
            await self.broadcaster.publish(EVENT_RANKING, board)
        except Exception as e:
            logger.warning(f"Ranking broadcast failed: {type(e).__name__}: {e}")
