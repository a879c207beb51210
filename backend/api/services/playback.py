"""Playback scheduler: owns the single on-screen slot.

Claiming the slot is a check-then-set (find whoever is playing, retire them,
promote the target). The whole sequence runs under one ``asyncio.Lock`` per
process; across processes the conditional UPDATE in
``QueueRepository.set_playing`` and the partial unique index on
``status = 'playing'`` make a second concurrent claim fail instead of
producing two playing records.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from services.archive_service import ArchiveService
from services.notifier import DisplayNotifier
from shared.clock import Clock, seconds_between, utcnow
from shared.errors import InvalidTransitionError, NotFoundError
from shared.models.display_history import OUTCOME_COMPLETED, HistoryRecord
from shared.models.display_queue import STATUS_APPROVED, STATUS_PLAYING, QueueRecord
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)


@dataclass
class PlaybackResult:
    record: QueueRecord
    force_completed: list[HistoryRecord] = field(default_factory=list)


class PlaybackScheduler:
    def __init__(
        self,
        queue_repo: QueueRepository,
        archive: ArchiveService,
        notifier: DisplayNotifier,
        *,
        expiry_grace_seconds: float = 5,
        clock: Clock = utcnow,
    ) -> None:
        self.queue_repo = queue_repo
        self.archive = archive
        self.notifier = notifier
        self.expiry_grace_seconds = expiry_grace_seconds
        self.clock = clock
        self._slot_lock = asyncio.Lock()

    async def mark_playing(self, record_id: str) -> PlaybackResult:
        """Put *record_id* on screen, force-completing any stuck occupant first.

        Marking the record that is already playing is a no-op.
        """
        async with self._slot_lock:
            target = await self.queue_repo.get(record_id)
            if target is None:
                raise NotFoundError(f"Queue record {record_id} not found")
            if target.status == STATUS_PLAYING:
                return PlaybackResult(record=target)
            if target.status != STATUS_APPROVED:
                raise InvalidTransitionError(
                    f"Record {record_id} is {target.status}; only approved records can play"
                )

            forced = await self._release_slot(exclude=record_id)

            claimed = await self.queue_repo.set_playing(record_id, self.clock())
            if claimed is None:
                if await self.queue_repo.get(record_id) is None:
                    raise NotFoundError(f"Queue record {record_id} not found")
                raise InvalidTransitionError("Display slot is held by another record")

        logger.info(
            f"Now playing {claimed.type} {claimed.id} for {claimed.duration_seconds}s"
            + (f" (force-completed {len(forced)})" if forced else "")
        )
        await self.notifier.publish_now_playing(claimed)
        await self.notifier.publish_status()
        return PlaybackResult(record=claimed, force_completed=forced)

    async def _release_slot(self, exclude: str) -> list[HistoryRecord]:
        """Archive every other playing record. One bad record never blocks the claim."""
        forced: list[HistoryRecord] = []
        for stuck in await self.queue_repo.get_playing():
            if stuck.id == exclude:
                continue
            try:
                entry = await self.archive.archive(
                    stuck.id, OUTCOME_COMPLETED, decided_by="system", notes="force-completed"
                )
                forced.append(entry)
                logger.warning(f"Force-completed stuck record {stuck.id}")
            except NotFoundError:
                continue  # completed concurrently
            except Exception as e:
                logger.exception(f"Could not archive stuck record {stuck.id}, evicting: {e}")
                try:
                    await self.queue_repo.delete(stuck.id)
                except Exception as evict_error:
                    logger.error(f"Eviction of {stuck.id} failed: {evict_error}")
        return forced

    async def skip_current(self) -> HistoryRecord | None:
        """Complete whatever is on screen now; None if the slot is empty."""
        skipped = None
        for current in await self.queue_repo.get_playing():
            try:
                skipped = await self.archive.archive(
                    current.id, OUTCOME_COMPLETED, decided_by="admin", notes="skipped"
                )
            except NotFoundError:
                continue
        if skipped is not None:
            await self.notifier.publish_status()
        return skipped

    async def expire_overdue(self) -> list[HistoryRecord]:
        """Server-side fallback for display clients that never call complete()."""
        now = self.clock()
        expired: list[HistoryRecord] = []
        for record in await self.queue_repo.get_playing():
            if record.playing_at is None:
                continue
            elapsed = seconds_between(record.playing_at, now)
            if elapsed < record.duration_seconds + self.expiry_grace_seconds:
                continue
            try:
                entry = await self.archive.archive(
                    record.id, OUTCOME_COMPLETED, decided_by="system", notes="expired"
                )
            except NotFoundError:
                continue
            logger.info(f"Expired {record.id} after {elapsed:.0f}s on screen")
            expired.append(entry)
        if expired:
            await self.notifier.publish_status()
        return expired
