"""Moderation controller: listing, approve, reject, complete."""

from __future__ import annotations

import logging

from services.archive_service import ArchiveService
from services.notifier import DisplayNotifier
from shared.clock import Clock, utcnow
from shared.errors import InvalidTransitionError, NotFoundError
from shared.models.display_history import OUTCOME_COMPLETED, OUTCOME_REJECTED, HistoryRecord
from shared.models.display_queue import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_PLAYING,
    QueueRecord,
)
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)

# The playing item leaves through complete or skip, never reject
REJECTABLE = (STATUS_PENDING, STATUS_APPROVED)
# Unmoderated records cannot be completed
COMPLETABLE = (STATUS_APPROVED, STATUS_PLAYING)


class QueueService:
    def __init__(
        self,
        queue_repo: QueueRepository,
        archive: ArchiveService,
        notifier: DisplayNotifier,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.queue_repo = queue_repo
        self.archive = archive
        self.notifier = notifier
        self.clock = clock

    async def list_queue(self) -> list[QueueRecord]:
        """Every record still in the queue, in submission order."""
        return await self.queue_repo.list_active()

    async def approve(
        self, record_id: str, width: int | None = None, height: int | None = None
    ) -> QueueRecord:
        """pending -> approved. Approving an already-approved record is a no-op."""
        record = await self.queue_repo.approve(record_id, self.clock(), width, height)
        if record is None:
            current = await self.queue_repo.get(record_id)
            if current is None:
                raise NotFoundError(f"Queue record {record_id} not found")
            if current.status == STATUS_APPROVED:
                return current
            raise InvalidTransitionError(f"Record {record_id} is already {current.status}")

        logger.info(f"Approved {record.type} {record_id}")
        await self.notifier.publish_status()
        return record

    async def reject(
        self, record_id: str, decided_by: str | None = None, reason: str | None = None
    ) -> HistoryRecord:
        """Archive a pending or approved record as rejected and drop its media file."""
        entry = await self.archive.archive(
            record_id,
            OUTCOME_REJECTED,
            decided_by=decided_by,
            notes=reason,
            remove_media=True,
            from_statuses=REJECTABLE,
        )
        await self.notifier.publish_status()
        return entry

    async def complete(self, record_id: str, decided_by: str | None = None) -> HistoryRecord:
        """Archive an approved or playing record as completed.

        A repeated call raises NotFoundError, never re-archives.
        """
        entry = await self.archive.archive(
            record_id, OUTCOME_COMPLETED, decided_by=decided_by, from_statuses=COMPLETABLE
        )
        await self.notifier.publish_status()
        return entry
