"""Data models for the display_queue table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CONTENT_TYPES = ("image", "text", "gift", "birthday")
SOCIAL_TYPES = ("ig", "fb", "line", "tiktok")

# Types that must carry an uploaded media file
MEDIA_TYPES = ("image", "birthday")

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_PLAYING = "playing"


@dataclass
class GiftItem:
    """One line of a gift order."""

    id: str
    name: str
    quantity: int = 1
    price: float = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GiftItem:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            quantity=int(data.get("quantity") or 1),
            price=float(data.get("price") or 0),
        )


@dataclass
class GiftOrder:
    """Gift sub-structure of a queue record (table delivery)."""

    order_id: str
    table_number: int
    items: list[GiftItem] = field(default_factory=list)
    note: str = ""
    total_price: float = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GiftOrder | None:
        if not data:
            return None
        return cls(
            order_id=str(data.get("order_id", "")),
            table_number=int(data.get("table_number") or 0),
            items=[GiftItem.from_dict(i) for i in data.get("items") or []],
            note=data.get("note") or "",
            total_price=float(data.get("total_price") or 0),
        )


@dataclass
class QueueRecord:
    """A submission awaiting moderation, waiting for the slot, or on screen."""

    id: str
    type: str  # 'image' | 'text' | 'gift' | 'birthday'
    sender: str
    duration_seconds: int
    amount: float = 0
    status: str = STATUS_PENDING  # 'pending' | 'approved' | 'playing'
    user_id: str | None = None
    email: str | None = None
    avatar: str | None = None
    file_path: str | None = None
    text: str = ""
    text_color: str = "white"
    social_type: str | None = None
    social_name: str | None = None
    composed: bool = False
    gift_order: GiftOrder | None = None
    width: int | None = None
    height: int | None = None
    received_at: datetime | None = None
    approved_at: datetime | None = None
    playing_at: datetime | None = None
