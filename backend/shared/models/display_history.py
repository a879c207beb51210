"""Data models for the display_history table."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any

from shared.models.display_queue import QueueRecord

OUTCOME_APPROVED = "approved"
OUTCOME_REJECTED = "rejected"
OUTCOME_COMPLETED = "completed"

OUTCOMES = (OUTCOME_APPROVED, OUTCOME_REJECTED, OUTCOME_COMPLETED)

# Entry types kept forever; everything else expires after the retention window
RETAINED_TYPES = ("gift",)


@dataclass
class HistoryRecord:
    """Immutable snapshot written once per terminal transition."""

    transaction_id: str
    type: str
    sender: str
    outcome: str  # 'approved' | 'rejected' | 'completed'
    amount: float = 0
    id: int | None = None
    user_id: str | None = None
    email: str | None = None
    avatar: str | None = None
    content: str = ""
    media_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    received_at: datetime | None = None
    decision_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_seconds: int = 0
    decided_by: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_queue(
        cls,
        record: QueueRecord,
        outcome: str,
        *,
        decision_at: datetime,
        retention_seconds: int,
        ended_at: datetime | None = None,
        decided_by: str | None = None,
        notes: str | None = None,
    ) -> HistoryRecord:
        """Snapshot a queue record at the moment it leaves the queue."""
        gift = record.gift_order
        metadata: dict[str, Any] = {
            "table_number": gift.table_number if gift else 0,
            "gift_items": [asdict(i) for i in gift.items] if gift else [],
            "order_id": gift.order_id if gift else None,
            "note": gift.note if gift else "",
            "theme": record.text_color,
            "social": {"type": record.social_type, "name": record.social_name},
            "composed": record.composed,
            "width": record.width,
            "height": record.height,
        }
        expires_at = None
        if record.type not in RETAINED_TYPES:
            expires_at = decision_at + timedelta(seconds=retention_seconds)

        return cls(
            transaction_id=record.id,
            type=record.type,
            sender=record.sender,
            outcome=outcome,
            amount=record.amount,
            user_id=record.user_id,
            email=record.email,
            avatar=record.avatar,
            content=record.text,
            media_url=record.file_path,
            metadata=metadata,
            received_at=record.received_at,
            decision_at=decision_at,
            started_at=record.playing_at if outcome == OUTCOME_COMPLETED else None,
            ended_at=ended_at,
            duration_seconds=record.duration_seconds,
            decided_by=decided_by,
            notes=notes if notes is not None else (gift.note if gift else None),
            created_at=decision_at,
            expires_at=expires_at,
        )
