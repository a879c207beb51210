"""Repository for the display_history table."""

from __future__ import annotations

import json
from datetime import datetime

import asyncpg

from shared.models.display_history import HistoryRecord

_COLUMNS = (
    "id, transaction_id, type, sender, user_id, email, avatar, amount, outcome, "
    "content, media_url, metadata, received_at, decision_at, started_at, ended_at, "
    "duration_seconds, decided_by, notes, created_at, expires_at"
)


def _row_to_history(row: asyncpg.Record) -> HistoryRecord:
    d = dict(row)
    meta = d.get("metadata")
    if isinstance(meta, str):
        d["metadata"] = json.loads(meta)
    elif meta is None:
        d["metadata"] = {}
    return HistoryRecord(**d)


async def insert_history(conn: asyncpg.Connection, entry: HistoryRecord) -> HistoryRecord | None:
    """Insert a snapshot on an existing connection (joins the caller's transaction).

    Returns None if a snapshot for the same transaction id already exists.
    """
    row = await conn.fetchrow(
        f"""
        INSERT INTO display_history
            (transaction_id, type, sender, user_id, email, avatar, amount, outcome,
             content, media_url, metadata, received_at, decision_at, started_at,
             ended_at, duration_seconds, decided_by, notes, created_at, expires_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11::jsonb, $12, $13, $14,
                $15, $16, $17, $18, COALESCE($19, NOW()), $20)
        ON CONFLICT (transaction_id) DO NOTHING
        RETURNING {_COLUMNS}
        """,
        entry.transaction_id,
        entry.type,
        entry.sender,
        entry.user_id,
        entry.email,
        entry.avatar,
        entry.amount,
        entry.outcome,
        entry.content,
        entry.media_url,
        json.dumps(entry.metadata or {}),
        entry.received_at,
        entry.decision_at,
        entry.started_at,
        entry.ended_at,
        entry.duration_seconds,
        entry.decided_by,
        entry.notes,
        entry.created_at,
        entry.expires_at,
    )
    return _row_to_history(row) if row else None


class HistoryRepository:
    """Pure SQL operations for display_history."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add(self, entry: HistoryRecord) -> HistoryRecord | None:
        async with self.pool.acquire() as conn:
            return await insert_history(conn, entry)

    async def list_recent(self, limit: int = 500) -> list[HistoryRecord]:
        """Newest decisions first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM display_history "
                "ORDER BY decision_at DESC NULLS LAST, id DESC LIMIT $1",
                limit,
            )
            return [_row_to_history(r) for r in rows]

    async def get(self, history_id: int) -> HistoryRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM display_history WHERE id = $1", history_id
            )
            return _row_to_history(row) if row else None

    async def find_by_transaction(self, transaction_id: str) -> HistoryRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM display_history WHERE transaction_id = $1",
                transaction_id,
            )
            return _row_to_history(row) if row else None

    async def delete(self, history_id: int) -> HistoryRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"DELETE FROM display_history WHERE id = $1 RETURNING {_COLUMNS}", history_id
            )
            return _row_to_history(row) if row else None

    async def delete_all(self) -> list[HistoryRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"DELETE FROM display_history RETURNING {_COLUMNS}")
            return [_row_to_history(r) for r in rows]

    async def purge_expired(self, now: datetime) -> list[HistoryRecord]:
        """Delete entries whose retention window has passed (gift entries never expire)."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"DELETE FROM display_history "
                f"WHERE expires_at IS NOT NULL AND expires_at <= $1 RETURNING {_COLUMNS}",
                now,
            )
            return [_row_to_history(r) for r in rows]

    async def media_paths(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT media_url FROM display_history WHERE media_url IS NOT NULL"
            )
            return {r["media_url"] for r in rows}
