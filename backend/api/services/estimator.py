"""Wait-time estimator: where a submission stands and when it should air.

Read-only. Pending records get a moderation position but no ETA; approved
records are ordered strictly by ``approved_at`` so estimates only shrink as
earlier items finish. Missing timestamps degrade to zero instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.clock import Clock, seconds_between, utcnow
from shared.models.display_queue import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_PLAYING,
    QueueRecord,
)
from shared.repositories.display_history import HistoryRepository
from shared.repositories.display_queue import QueueRepository

_FAR_FUTURE = datetime.max


@dataclass
class OrderStatus:
    id: str
    found: bool
    status: str | None = None  # queue status, or history outcome once archived
    in_queue: bool = False
    position: int | None = None
    lead_seconds: float | None = None
    remaining_seconds: float | None = None
    duration_seconds: int | None = None
    projected_start: datetime | None = None
    projected_end: datetime | None = None
    decision_at: datetime | None = None


def _remaining(record: QueueRecord, now: datetime) -> float:
    if record.playing_at is None:
        return 0.0
    return max(0.0, record.duration_seconds - seconds_between(record.playing_at, now))


def _ts_key(ts: datetime | None) -> datetime:
    if ts is None:
        return _FAR_FUTURE
    return ts.replace(tzinfo=None) - (ts.utcoffset() or timedelta(0))


def _fifo_key(record: QueueRecord) -> tuple[datetime, datetime, str]:
    return (_ts_key(record.approved_at), _ts_key(record.received_at), record.id)


def project(records: list[QueueRecord], target: QueueRecord, now: datetime) -> OrderStatus:
    """Estimate *target*'s position/ETA against a snapshot of the queue."""
    result = OrderStatus(
        id=target.id,
        found=True,
        status=target.status,
        in_queue=True,
        duration_seconds=target.duration_seconds,
    )

    if target.status == STATUS_PLAYING:
        result.position = 1
        result.remaining_seconds = _remaining(target, now)
        result.lead_seconds = 0.0
        if target.playing_at is not None:
            result.projected_start = target.playing_at
            result.projected_end = target.playing_at + timedelta(seconds=target.duration_seconds)
        return result

    if target.status == STATUS_PENDING:
        target_key = (_ts_key(target.received_at), target.id)
        ahead = [
            r
            for r in records
            if r.status == STATUS_PENDING
            and r.id != target.id
            and (_ts_key(r.received_at), r.id) < target_key
        ]
        result.position = len(ahead) + 1
        return result

    if target.status == STATUS_APPROVED:
        playing = next((r for r in records if r.status == STATUS_PLAYING), None)
        target_key = _fifo_key(target)
        ahead = [
            r
            for r in records
            if r.status == STATUS_APPROVED and r.id != target.id and _fifo_key(r) < target_key
        ]
        lead = (_remaining(playing, now) if playing else 0.0) + sum(
            r.duration_seconds for r in ahead
        )
        result.position = len(ahead) + (1 if playing else 0) + 1
        result.lead_seconds = lead
        result.projected_start = now + timedelta(seconds=lead)
        result.projected_end = result.projected_start + timedelta(
            seconds=target.duration_seconds
        )
    return result


class WaitTimeEstimator:
    def __init__(
        self,
        queue_repo: QueueRepository,
        history_repo: HistoryRepository,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.queue_repo = queue_repo
        self.history_repo = history_repo
        self.clock = clock

    async def estimate(self, record_id: str) -> OrderStatus:
        records = await self.queue_repo.list_active()
        target = next((r for r in records if r.id == record_id), None)
        if target is not None:
            return project(records, target, self.clock())

        entry = await self.history_repo.find_by_transaction(record_id)
        if entry is None:
            return OrderStatus(id=record_id, found=False)
        return OrderStatus(
            id=record_id,
            found=True,
            status=entry.outcome,
            duration_seconds=entry.duration_seconds,
            decision_at=entry.decision_at,
        )
