"""History store operations: listing, purge, restore, retention sweep."""

from __future__ import annotations

import logging
import uuid

from services.media_storage import MediaStorage
from services.notifier import DisplayNotifier
from shared.clock import Clock, utcnow
from shared.errors import NotFoundError
from shared.models.display_history import HistoryRecord
from shared.models.display_queue import (
    STATUS_PENDING,
    SOCIAL_TYPES,
    GiftItem,
    GiftOrder,
    QueueRecord,
)
from shared.repositories.display_history import HistoryRepository
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)


def restore_record(entry: HistoryRecord, record_id: str, received_at) -> QueueRecord:
    """Build a fresh pending queue record from an archived snapshot."""
    meta = entry.metadata or {}
    social = meta.get("social") or {}
    social_type = social.get("type")

    gift = None
    items = meta.get("gift_items") or []
    if entry.type == "gift" or items:
        gift = GiftOrder(
            order_id=meta.get("order_id") or entry.transaction_id,
            table_number=int(meta.get("table_number") or 0),
            items=[GiftItem.from_dict(i) for i in items],
            note=meta.get("note") or "",
            total_price=entry.amount,
        )

    return QueueRecord(
        id=record_id,
        type=entry.type,
        sender=entry.sender,
        duration_seconds=max(1, entry.duration_seconds or 1),
        amount=entry.amount,
        status=STATUS_PENDING,
        user_id=entry.user_id,
        email=entry.email,
        avatar=entry.avatar,
        file_path=entry.media_url,
        text=entry.content or "",
        text_color=meta.get("theme") or "white",
        social_type=social_type if social_type in SOCIAL_TYPES else None,
        social_name=social.get("name"),
        composed=bool(meta.get("composed", False)),
        gift_order=gift,
        width=meta.get("width"),
        height=meta.get("height"),
        received_at=received_at,
    )


class HistoryService:
    def __init__(
        self,
        history_repo: HistoryRepository,
        queue_repo: QueueRepository,
        media: MediaStorage,
        notifier: DisplayNotifier,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.history_repo = history_repo
        self.queue_repo = queue_repo
        self.media = media
        self.notifier = notifier
        self.clock = clock

    async def list_history(self, limit: int = 500) -> list[HistoryRecord]:
        return await self.history_repo.list_recent(limit)

    async def delete(self, history_id: int) -> HistoryRecord:
        entry = await self.history_repo.delete(history_id)
        if entry is None:
            raise NotFoundError(f"History entry {history_id} not found")
        await self._drop_media([entry])
        logger.info(f"Deleted history entry {history_id}")
        return entry

    async def delete_all(self) -> int:
        entries = await self.history_repo.delete_all()
        await self._drop_media(entries)
        logger.info(f"Deleted {len(entries)} history entries")
        return len(entries)

    async def purge_expired(self) -> int:
        """Retention sweep: drop expired non-gift entries and their media."""
        entries = await self.history_repo.purge_expired(self.clock())
        await self._drop_media(entries)
        if entries:
            logger.info(f"Retention sweep removed {len(entries)} history entries")
        return len(entries)

    async def restore(self, history_id: int) -> QueueRecord:
        """Re-queue an archived item as a brand-new pending submission."""
        entry = await self.history_repo.get(history_id)
        if entry is None:
            raise NotFoundError(f"History entry {history_id} not found")
        record = await self.queue_repo.add(
            restore_record(entry, uuid.uuid4().hex, self.clock())
        )
        logger.info(f"Restored history {history_id} as queue record {record.id}")
        await self.notifier.publish_status()
        return record

    async def sweep_media(self, max_age_seconds: float) -> int:
        """Delete stale upload files that no queue or history record points at."""
        referenced = await self.queue_repo.media_paths()
        referenced |= await self.history_repo.media_paths()
        return await self.media.sweep(referenced, max_age_seconds)

    async def _drop_media(self, entries: list[HistoryRecord]) -> None:
        urls = {e.media_url for e in entries if e.media_url}
        if not urls:
            return
        # a restored copy in the queue may still point at the same file
        in_use = await self.queue_repo.media_paths()
        for url in urls - in_use:
            await self.media.delete(url)
