"""Completion / archival: turns a terminated queue record into history."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from services.media_storage import MediaStorage
from shared.clock import Clock, utcnow
from shared.errors import InvalidTransitionError, NotFoundError
from shared.models.display_history import (
    OUTCOME_COMPLETED,
    RETAINED_TYPES,
    HistoryRecord,
)
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)


class ArchiveService:
    def __init__(
        self,
        queue_repo: QueueRepository,
        media: MediaStorage,
        *,
        retention_seconds: int,
        clock: Clock = utcnow,
    ) -> None:
        self.queue_repo = queue_repo
        self.media = media
        self.retention_seconds = retention_seconds
        self.clock = clock

    async def archive(
        self,
        record_id: str,
        outcome: str,
        *,
        decided_by: str | None = None,
        notes: str | None = None,
        remove_media: bool = False,
        from_statuses: Sequence[str] | None = None,
    ) -> HistoryRecord:
        """Remove *record_id* from the queue and write its one history entry.

        Raises NotFoundError when the record is already gone, which makes
        repeated completion/rejection calls harmless. With *from_statuses*, a
        record in any other status raises InvalidTransitionError and stays queued.
        """
        now = self.clock()
        entry = await self.queue_repo.archive(
            record_id,
            outcome,
            decision_at=now,
            retention_seconds=self.retention_seconds,
            ended_at=now if outcome == OUTCOME_COMPLETED else None,
            decided_by=decided_by,
            notes=notes,
            from_statuses=from_statuses,
        )
        if entry is None:
            current = await self.queue_repo.get(record_id)
            if current is None:
                raise NotFoundError(f"Queue record {record_id} not found")
            raise InvalidTransitionError(
                f"Cannot mark {record_id} {outcome} while it is {current.status}"
            )

        if remove_media and entry.media_url and entry.type not in RETAINED_TYPES:
            await self.media.delete(entry.media_url)

        logger.info(f"Archived {entry.type} {record_id} as {outcome}")
        return entry
