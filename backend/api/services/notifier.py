"""Builds realtime payloads (status snapshot, now-playing) and publishes them.

Publishing is best effort: a failure here is logged and never fails the
request that triggered it.
"""

from __future__ import annotations

import logging
from typing import Any

from services.broadcaster import (
    EVENT_NOW_PLAYING,
    EVENT_SETTINGS,
    EVENT_STATUS,
    Broadcaster,
)
from shared.models.display_config import DisplayConfig
from shared.models.display_queue import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_PLAYING,
    QueueRecord,
)
from shared.repositories.display_config import DisplayConfigRepository
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)


def now_playing_payload(record: QueueRecord) -> dict[str, Any]:
    """Fields a display client needs to render the slot."""
    gift = record.gift_order
    return {
        "id": record.id,
        "type": record.type,
        "sender": record.sender,
        "avatar": record.avatar,
        "text": record.text,
        "text_color": record.text_color,
        "social": {"type": record.social_type, "name": record.social_name},
        "file_path": record.file_path,
        "composed": record.composed,
        "duration_seconds": record.duration_seconds,
        "playing_at": record.playing_at,
        "width": record.width,
        "height": record.height,
        "gift": {
            "table_number": gift.table_number,
            "items": gift.items,
            "note": gift.note,
        }
        if gift
        else None,
    }


class DisplayNotifier:
    """Publishes queue-affecting changes to realtime subscribers."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        queue_repo: QueueRepository,
        config_repo: DisplayConfigRepository,
    ) -> None:
        self.broadcaster = broadcaster
        self.queue_repo = queue_repo
        self.config_repo = config_repo

    async def build_status(self) -> dict[str, Any]:
        config = await self.config_repo.get()
        records = await self.queue_repo.list_active()
        playing = next((r for r in records if r.status == STATUS_PLAYING), None)
        return {
            **config.model_dump(),
            "queue": {
                "pending": sum(1 for r in records if r.status == STATUS_PENDING),
                "approved": sum(1 for r in records if r.status == STATUS_APPROVED),
                "now_playing": now_playing_payload(playing) if playing else None,
            },
        }

    async def publish_status(self) -> None:
        try:
            await self.broadcaster.publish(EVENT_STATUS, await self.build_status())
        except Exception as e:
            logger.warning(f"Status broadcast failed: {type(e).__name__}: {e}")

    async def publish_now_playing(self, record: QueueRecord) -> None:
        try:
            await self.broadcaster.publish(EVENT_NOW_PLAYING, now_playing_payload(record))
        except Exception as e:
            logger.warning(f"Now-playing broadcast failed for {record.id}: {e}")

    async def publish_settings(self, config: DisplayConfig) -> None:
        try:
            await self.broadcaster.publish(EVENT_SETTINGS, config.model_dump())
        except Exception as e:
            logger.warning(f"Settings broadcast failed: {e}")
        await self.publish_status()
