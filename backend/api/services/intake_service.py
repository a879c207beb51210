"""Intake gateway: normalizes a patron submission into a pending queue record."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from services.media_storage import MediaStorage
from services.notifier import DisplayNotifier
from services.ranking_service import RankingService
from shared.clock import Clock, utcnow
from shared.errors import ValidationError
from shared.models.display_config import DisplayConfig
from shared.models.display_queue import (
    CONTENT_TYPES,
    MEDIA_TYPES,
    SOCIAL_TYPES,
    STATUS_PENDING,
    GiftItem,
    GiftOrder,
    QueueRecord,
)
from shared.repositories.display_config import DisplayConfigRepository
from shared.repositories.display_queue import QueueRepository

logger = logging.getLogger(__name__)

# Gift orders flash on screen briefly; the table delivery is the real payload
GIFT_DISPLAY_SECONDS = 1


@dataclass
class Upload:
    filename: str | None
    data: bytes


@dataclass
class Submission:
    type: str
    sender: str | None = None
    text: str = ""
    duration_seconds: int | None = None
    amount: float = 0
    user_id: str | None = None
    email: str | None = None
    avatar: str | None = None
    text_color: str | None = None
    social_type: str | None = None
    social_name: str | None = None
    composed: bool = False
    upload: Upload | None = None


@dataclass
class GiftSubmission:
    order_id: str
    table_number: int
    items: list[dict[str, Any]] = field(default_factory=list)
    sender: str | None = None
    note: str = ""
    total_price: float = 0
    user_id: str | None = None
    email: str | None = None
    avatar: str | None = None


class IntakeService:
    def __init__(
        self,
        queue_repo: QueueRepository,
        config_repo: DisplayConfigRepository,
        media: MediaStorage,
        ranking: RankingService,
        notifier: DisplayNotifier,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.queue_repo = queue_repo
        self.config_repo = config_repo
        self.media = media
        self.ranking = ranking
        self.notifier = notifier
        self.clock = clock

    async def submit(self, submission: Submission) -> QueueRecord:
        """Validate, store media, enqueue as pending and credit the submitter."""
        config = await self.config_repo.get()
        content_type = (submission.type or "").strip().lower()
        self._check_open(config, content_type)

        if content_type == "gift":
            raise ValidationError("Gift orders are submitted through the gift endpoint")
        if submission.amount is None or submission.amount < 0:
            raise ValidationError("amount must be zero or greater")

        duration = submission.duration_seconds
        if duration is None:
            duration = config.time
        if duration < 1:
            raise ValidationError("duration_seconds must be at least 1")

        text = (submission.text or "").strip()
        if content_type == "text" and not text:
            raise ValidationError("Text submissions need a message")

        has_file = submission.upload is not None and len(submission.upload.data) > 0
        if content_type in MEDIA_TYPES and not has_file:
            raise ValidationError(f"{content_type} submissions need a file")

        social_type = (submission.social_type or "").strip().lower() or None
        if social_type is not None and social_type not in SOCIAL_TYPES:
            raise ValidationError(f"Unknown social type: {social_type}")

        file_path = None
        if has_file:
            file_path = await self.media.save(submission.upload.filename, submission.upload.data)  # type: ignore[union-attr]

        record = QueueRecord(
            id=uuid.uuid4().hex,
            type=content_type,
            sender=(submission.sender or "").strip() or "Unknown",
            duration_seconds=int(duration),
            amount=float(submission.amount),
            status=STATUS_PENDING,
            user_id=submission.user_id or None,
            email=submission.email or None,
            avatar=submission.avatar or None,
            file_path=file_path,
            text=text,
            text_color=submission.text_color or "white",
            social_type=social_type,
            social_name=(submission.social_name or None) if social_type else None,
            composed=submission.composed,
            received_at=self.clock(),
        )
        try:
            record = await self.queue_repo.add(record)
        except Exception:
            await self.media.delete(file_path)
            raise

        logger.info(f"Queued {record.type} {record.id} from {record.sender} ({record.duration_seconds}s)")
        await self._credit(record, submission.sender)
        await self.notifier.publish_status()
        return record

    async def submit_gift(self, gift: GiftSubmission) -> QueueRecord:
        """Enqueue a gift order for table delivery."""
        config = await self.config_repo.get()
        self._check_open(config, "gift")

        if not str(gift.order_id or "").strip():
            raise ValidationError("order_id is required")
        if not 1 <= gift.table_number <= config.table_count:
            raise ValidationError(f"table_number must be between 1 and {config.table_count}")
        if not gift.items:
            raise ValidationError("A gift order needs at least one item")
        if gift.total_price is None or gift.total_price < 0:
            raise ValidationError("total_price must be zero or greater")

        try:
            items = [GiftItem.from_dict(i) for i in gift.items]
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid gift item: {e}") from e

        record = QueueRecord(
            id=uuid.uuid4().hex,
            type="gift",
            sender=(gift.sender or "").strip() or "Guest",
            duration_seconds=GIFT_DISPLAY_SECONDS,
            amount=float(gift.total_price),
            status=STATUS_PENDING,
            user_id=gift.user_id or None,
            email=gift.email or None,
            avatar=gift.avatar or None,
            text=f"Gift to table {gift.table_number}",
            composed=True,
            gift_order=GiftOrder(
                order_id=str(gift.order_id),
                table_number=gift.table_number,
                items=items,
                note=gift.note or "",
                total_price=float(gift.total_price),
            ),
            received_at=self.clock(),
        )
        record = await self.queue_repo.add(record)

        logger.info(f"Queued gift order {gift.order_id} for table {gift.table_number} as {record.id}")
        await self._credit(record, gift.sender)
        await self.notifier.publish_status()
        return record

    def _check_open(self, config: DisplayConfig, content_type: str) -> None:
        if content_type not in CONTENT_TYPES:
            raise ValidationError(f"Unknown content type: {content_type or '(empty)'}")
        if not config.system_on:
            raise ValidationError("The display is not accepting submissions right now")
        if not config.accepts(content_type):
            raise ValidationError(f"{content_type} submissions are currently disabled")

    async def _credit(self, record: QueueRecord, name: str | None) -> None:
        # ranking is a side effect; the submission is already queued
        try:
            await self.ranking.add_points(
                record.user_id, name, record.amount, record.email, record.avatar
            )
        except Exception as e:
            logger.error(f"Failed to credit ranking for {record.id}: {e}")
