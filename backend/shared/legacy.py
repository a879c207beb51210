"""Read-time normalization of history/ranking records exported by older deployments.

Older exports used camelCase keys and, before that, gift-centric names
(``giftId``, ``giftName``, ``senderName``, ``amount``, ``filePath``,
``approvalDate``) with ``status='verified'`` meaning approved. Everything is
mapped onto :class:`HistoryRecord` in one place.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from shared.errors import ValidationError
from shared.models.display_history import (
    OUTCOME_APPROVED,
    OUTCOMES,
    RETAINED_TYPES,
    HistoryRecord,
)
from shared.models.display_queue import CONTENT_TYPES

_LEGACY_OUTCOMES = {"verified": OUTCOME_APPROVED}


def _first(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return default


def _number(value: Any, cast: type, field: str) -> Any:
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} is not a number: {value!r}") from e


def parse_timestamp(value: Any) -> datetime | None:
    """ISO strings (``Z`` suffix allowed) or epoch milliseconds; naive means UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        try:
            if isinstance(value, (int, float)) or text.isdigit():
                ts = datetime.fromtimestamp(float(text) / 1000, UTC)
            else:
                ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except (OverflowError, OSError, ValueError) as e:
            raise ValidationError(f"Unreadable timestamp: {text!r}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def _metadata(raw: dict[str, Any]) -> dict[str, Any]:
    meta = raw.get("metadata") or {}
    social = meta.get("social") or {}
    return {
        "table_number": _number(
            _first(meta, "tableNumber", "table_number", default=0)
            or _first(raw, "tableNumber", default=0),
            int,
            "tableNumber",
        ),
        "gift_items": list(_first(meta, "giftItems", "gift_items", default=[])),
        "order_id": _first(meta, "orderId", "order_id"),
        "note": _first(meta, "note", default="") or _first(raw, "note", default=""),
        "theme": _first(meta, "theme"),
        "social": {"type": social.get("type"), "name": social.get("name")},
        "composed": bool(meta.get("composed", False)),
        "width": meta.get("width"),
        "height": meta.get("height"),
    }


def normalize_history(
    raw: dict[str, Any], *, retention_seconds: int | None = None
) -> HistoryRecord:
    """Map any known history shape onto a :class:`HistoryRecord`.

    Raises ValidationError when the record has no id or an outcome that has
    no modern equivalent.
    """
    transaction_id = _first(raw, "transactionId", "transaction_id", "giftId", "id")
    if transaction_id is None:
        raise ValidationError("History record has no transaction id")

    status = str(_first(raw, "outcome", "status", default=OUTCOME_APPROVED)).lower()
    outcome = _LEGACY_OUTCOMES.get(status, status)
    if outcome not in OUTCOMES:
        raise ValidationError(f"History record {transaction_id} has unsupported status {status!r}")

    content_type = str(_first(raw, "type", default="gift" if "giftId" in raw else "text")).lower()
    if content_type not in CONTENT_TYPES:
        raise ValidationError(f"History record {transaction_id} has unknown type {content_type!r}")

    decision_at = parse_timestamp(_first(raw, "decisionAt", "decision_at", "approvalDate", "checkedAt"))
    created_at = parse_timestamp(_first(raw, "createdAt", "created_at")) or decision_at

    expires_at = None
    if retention_seconds is not None and content_type not in RETAINED_TYPES:
        anchor = created_at or decision_at or datetime.now(UTC)
        expires_at = anchor + timedelta(seconds=retention_seconds)

    return HistoryRecord(
        transaction_id=str(transaction_id),
        type=content_type,
        sender=str(_first(raw, "sender", "senderName", default="Unknown")),
        outcome=outcome,
        amount=_number(_first(raw, "price", "amount", default=0), float, "price"),
        user_id=_first(raw, "userId", "user_id"),
        email=_first(raw, "email"),
        avatar=_first(raw, "avatar"),
        content=str(_first(raw, "content", "giftName", "text", default="")),
        media_url=_first(raw, "mediaUrl", "media_url", "filePath"),
        metadata=_metadata(raw),
        received_at=parse_timestamp(_first(raw, "receivedAt", "received_at")),
        decision_at=decision_at,
        started_at=parse_timestamp(_first(raw, "startedAt", "started_at")),
        ended_at=parse_timestamp(_first(raw, "endedAt", "ended_at")),
        duration_seconds=_number(
            _first(raw, "duration", "time", "duration_seconds", default=0), int, "duration"
        ),
        decided_by=_first(raw, "approvedBy", "decidedBy", "decided_by"),
        notes=_first(raw, "rejectReason", "notes"),
        created_at=created_at,
        expires_at=expires_at,
    )


def normalize_ranking(raw: dict[str, Any]) -> tuple[str, str, float]:
    """(user_id, name, points) from a legacy ranking row.

    Legacy rankings were keyed by display name, so the name doubles as the id
    when no account id was recorded.
    """
    name = str(_first(raw, "name", "senderName", default="")).strip()
    user_id = str(_first(raw, "userId", "user_id", default=name)).strip()
    if not user_id:
        raise ValidationError("Ranking record has neither a user id nor a name")
    points = _number(_first(raw, "points", default=0), float, "points")
    return user_id, name or user_id, points
