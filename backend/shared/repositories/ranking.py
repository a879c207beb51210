"""Repository for the rankings table."""

from __future__ import annotations

import asyncpg

from shared.models.ranking import RankingEntry

_COLUMNS = "id, user_id, name, email, avatar, points, created_at, updated_at"

# rank = 1 + number of entries with strictly more points
_RANK_EXPR = "(SELECT COUNT(*) FROM rankings o WHERE o.points > r.points) + 1 AS rank"


class RankingRepository:
    """Pure SQL operations for rankings."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add_points(
        self,
        user_id: str,
        name: str | None,
        amount: float,
        email: str | None = None,
        avatar: str | None = None,
    ) -> RankingEntry:
        """Atomically add *amount* to a submitter's total, creating the row if needed.

        A None *name* keeps the stored name; new rows fall back to "Guest".
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                WITH upserted AS (
                    INSERT INTO rankings (user_id, name, email, avatar, points)
                    VALUES ($1, COALESCE($2::text, 'Guest'), $3, $4, $5)
                    ON CONFLICT (user_id) DO UPDATE SET
                        points     = rankings.points + EXCLUDED.points,
                        name       = COALESCE($2::text, rankings.name),
                        email      = COALESCE(EXCLUDED.email, rankings.email),
                        avatar     = COALESCE(EXCLUDED.avatar, rankings.avatar),
                        updated_at = NOW()
                    RETURNING {_COLUMNS}
                )
                SELECT r.*,
                    (SELECT COUNT(*) FROM rankings o
                     WHERE o.points > r.points AND o.user_id <> r.user_id) + 1 AS rank
                FROM upserted r
                """,
                user_id,
                name,
                email,
                avatar,
                amount,
            )
            return RankingEntry(**dict(row))

    async def get(self, user_id: str) -> RankingEntry | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT r.*, {_RANK_EXPR} FROM rankings r WHERE r.user_id = $1", user_id
            )
            return RankingEntry(**dict(row)) if row else None

    async def get_top(self, limit: int) -> list[RankingEntry]:
        """Highest totals first; ties keep insertion order."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT r.*, {_RANK_EXPR} FROM rankings r "
                "ORDER BY r.points DESC, r.id ASC LIMIT $1",
                limit,
            )
            return [RankingEntry(**dict(row)) for row in rows]

    async def count(self) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM rankings")
