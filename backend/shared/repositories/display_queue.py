"""Repository for the display_queue table.

Every status change is a conditional UPDATE/DELETE so that two callers racing
on the same row cannot both win: the loser simply gets ``None`` back.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import asdict
from datetime import datetime

import asyncpg

from shared.models.display_history import HistoryRecord
from shared.models.display_queue import GiftOrder, QueueRecord
from shared.repositories.display_history import insert_history

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, type, sender, user_id, email, avatar, file_path, text, text_color, "
    "social_type, social_name, composed, duration_seconds, amount, status, "
    "gift_order, width, height, received_at, approved_at, playing_at"
)


def _row_to_record(row: asyncpg.Record) -> QueueRecord:
    """Convert a DB row to QueueRecord, parsing the gift_order JSON if present."""
    d = dict(row)
    gift = d.pop("gift_order", None)
    if isinstance(gift, str):
        gift = json.loads(gift)
    return QueueRecord(**d, gift_order=GiftOrder.from_dict(gift))


def _gift_json(gift: GiftOrder | None) -> str | None:
    return json.dumps(asdict(gift)) if gift else None


class QueueRepository:
    """Pure SQL operations for display_queue."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add(self, record: QueueRecord) -> QueueRecord:
        """Insert a new record (normally status='pending')."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO display_queue
                    (id, type, sender, user_id, email, avatar, file_path, text, text_color,
                     social_type, social_name, composed, duration_seconds, amount, status,
                     gift_order, width, height, received_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15,
                        $16::jsonb, $17, $18, $19)
                RETURNING {_COLUMNS}
                """,
                record.id,
                record.type,
                record.sender,
                record.user_id,
                record.email,
                record.avatar,
                record.file_path,
                record.text,
                record.text_color,
                record.social_type,
                record.social_name,
                record.composed,
                record.duration_seconds,
                record.amount,
                record.status,
                _gift_json(record.gift_order),
                record.width,
                record.height,
                record.received_at,
            )
            return _row_to_record(row)

    async def get(self, record_id: str) -> QueueRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM display_queue WHERE id = $1", record_id
            )
            return _row_to_record(row) if row else None

    async def list_active(self) -> list[QueueRecord]:
        """All records still in the queue, oldest submission first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM display_queue ORDER BY received_at ASC, id ASC"
            )
            return [_row_to_record(r) for r in rows]

    async def get_playing(self) -> list[QueueRecord]:
        """Records currently holding the slot (normally zero or one)."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM display_queue "
                "WHERE status = 'playing' ORDER BY playing_at ASC"
            )
            return [_row_to_record(r) for r in rows]

    async def approve(
        self,
        record_id: str,
        approved_at: datetime,
        width: int | None = None,
        height: int | None = None,
    ) -> QueueRecord | None:
        """Transition pending -> approved. Returns None if not pending (or gone)."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE display_queue
                SET status = 'approved', approved_at = $2,
                    width = COALESCE($3, width), height = COALESCE($4, height)
                WHERE id = $1 AND status = 'pending'
                RETURNING {_COLUMNS}
                """,
                record_id,
                approved_at,
                width,
                height,
            )
            return _row_to_record(row) if row else None

    async def set_playing(self, record_id: str, playing_at: datetime) -> QueueRecord | None:
        """Transition approved -> playing, only while nothing else is playing.

        Returns None when the record is not approved or the slot is taken.
        """
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    UPDATE display_queue
                    SET status = 'playing', playing_at = $2
                    WHERE id = $1 AND status = 'approved'
                      AND NOT EXISTS (
                          SELECT 1 FROM display_queue WHERE status = 'playing'
                      )
                    RETURNING {_COLUMNS}
                    """,
                    record_id,
                    playing_at,
                )
            except asyncpg.UniqueViolationError:
                logger.warning(f"Slot claim for {record_id} lost to a concurrent claim")
                return None
            return _row_to_record(row) if row else None

    async def archive(
        self,
        record_id: str,
        outcome: str,
        *,
        decision_at: datetime,
        retention_seconds: int,
        ended_at: datetime | None = None,
        decided_by: str | None = None,
        notes: str | None = None,
        from_statuses: Sequence[str] | None = None,
    ) -> HistoryRecord | None:
        """Move a record into display_history in one transaction.

        With *from_statuses*, only a record currently in one of them is moved.
        Returns the history entry, or None if no record was removed.
        """
        statuses = list(from_statuses) if from_statuses is not None else None
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f"""
                    DELETE FROM display_queue
                    WHERE id = $1 AND ($2::text[] IS NULL OR status = ANY($2::text[]))
                    RETURNING {_COLUMNS}
                    """,
                    record_id,
                    statuses,
                )
                if not row:
                    return None
                snapshot = HistoryRecord.from_queue(
                    _row_to_record(row),
                    outcome,
                    decision_at=decision_at,
                    retention_seconds=retention_seconds,
                    ended_at=ended_at,
                    decided_by=decided_by,
                    notes=notes,
                )
                return await insert_history(conn, snapshot)

    async def delete(self, record_id: str) -> QueueRecord | None:
        """Remove a record without writing history."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"DELETE FROM display_queue WHERE id = $1 RETURNING {_COLUMNS}", record_id
            )
            return _row_to_record(row) if row else None

    async def media_paths(self) -> set[str]:
        """Media references held by queued records."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT file_path FROM display_queue WHERE file_path IS NOT NULL"
            )
            return {r["file_path"] for r in rows}
