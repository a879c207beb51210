"""In-memory stand-ins for the asyncpg repositories.

Each fake keeps the conditional semantics of its SQL counterpart (approve only
from pending, claim the slot only when nobody is playing, one history row per
transaction id) so services behave the same against either.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from core.dependencies import Services
from shared.models import DisplayConfig, HistoryRecord, PricingPreset, QueueRecord, RankingEntry
from shared.models.display_queue import STATUS_APPROVED, STATUS_PENDING, STATUS_PLAYING


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 20, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeHistoryRepository:
    def __init__(self) -> None:
        self.entries: dict[int, HistoryRecord] = {}
        self._ids = itertools.count(1)

    async def add(self, entry: HistoryRecord) -> HistoryRecord | None:
        if any(e.transaction_id == entry.transaction_id for e in self.entries.values()):
            return None
        stored = replace(entry, id=next(self._ids), created_at=entry.created_at or entry.decision_at)
        self.entries[stored.id] = stored  # type: ignore[index]
        return replace(stored)

    async def list_recent(self, limit: int = 500) -> list[HistoryRecord]:
        ordered = sorted(self.entries.values(), key=lambda e: e.id or 0, reverse=True)
        return [replace(e) for e in ordered[:limit]]

    async def get(self, history_id: int) -> HistoryRecord | None:
        entry = self.entries.get(history_id)
        return replace(entry) if entry else None

    async def find_by_transaction(self, transaction_id: str) -> HistoryRecord | None:
        for entry in self.entries.values():
            if entry.transaction_id == transaction_id:
                return replace(entry)
        return None

    async def delete(self, history_id: int) -> HistoryRecord | None:
        return self.entries.pop(history_id, None)

    async def delete_all(self) -> list[HistoryRecord]:
        removed = list(self.entries.values())
        self.entries.clear()
        return removed

    async def purge_expired(self, now: datetime) -> list[HistoryRecord]:
        expired = [
            e for e in self.entries.values() if e.expires_at is not None and e.expires_at <= now
        ]
        for entry in expired:
            del self.entries[entry.id]  # type: ignore[arg-type]
        return expired

    async def media_paths(self) -> set[str]:
        return {e.media_url for e in self.entries.values() if e.media_url}


class FakeQueueRepository:
    def __init__(self, history: FakeHistoryRepository) -> None:
        self.history = history
        self.records: dict[str, QueueRecord] = {}
        # ids whose archive() raises, to exercise failure isolation
        self.broken: set[str] = set()

    async def add(self, record: QueueRecord) -> QueueRecord:
        await asyncio.sleep(0)
        self.records[record.id] = replace(record)
        return replace(record)

    async def get(self, record_id: str) -> QueueRecord | None:
        await asyncio.sleep(0)
        record = self.records.get(record_id)
        return replace(record) if record else None

    async def list_active(self) -> list[QueueRecord]:
        ordered = sorted(self.records.values(), key=lambda r: (r.received_at, r.id))
        return [replace(r) for r in ordered]

    async def get_playing(self) -> list[QueueRecord]:
        await asyncio.sleep(0)
        return [replace(r) for r in self.records.values() if r.status == STATUS_PLAYING]

    async def approve(
        self,
        record_id: str,
        approved_at: datetime,
        width: int | None = None,
        height: int | None = None,
    ) -> QueueRecord | None:
        record = self.records.get(record_id)
        if record is None or record.status != STATUS_PENDING:
            return None
        record.status = STATUS_APPROVED
        record.approved_at = approved_at
        record.width = width if width is not None else record.width
        record.height = height if height is not None else record.height
        return replace(record)

    async def set_playing(self, record_id: str, playing_at: datetime) -> QueueRecord | None:
        await asyncio.sleep(0)
        record = self.records.get(record_id)
        if record is None or record.status != STATUS_APPROVED:
            return None
        if any(r.status == STATUS_PLAYING for r in self.records.values()):
            return None
        record.status = STATUS_PLAYING
        record.playing_at = playing_at
        return replace(record)

    async def archive(
        self,
        record_id: str,
        outcome: str,
        *,
        decision_at: datetime,
        retention_seconds: int,
        ended_at: datetime | None = None,
        decided_by: str | None = None,
        notes: str | None = None,
        from_statuses: Sequence[str] | None = None,
    ) -> HistoryRecord | None:
        if record_id in self.broken:
            raise RuntimeError(f"archive of {record_id} failed")
        await asyncio.sleep(0)
        record = self.records.get(record_id)
        if record is None or (from_statuses is not None and record.status not in from_statuses):
            return None
        del self.records[record_id]
        snapshot = HistoryRecord.from_queue(
            record,
            outcome,
            decision_at=decision_at,
            retention_seconds=retention_seconds,
            ended_at=ended_at,
            decided_by=decided_by,
            notes=notes,
        )
        return await self.history.add(snapshot)

    async def delete(self, record_id: str) -> QueueRecord | None:
        return self.records.pop(record_id, None)

    async def media_paths(self) -> set[str]:
        return {r.file_path for r in self.records.values() if r.file_path}


class FakeRankingRepository:
    def __init__(self) -> None:
        self.entries: dict[str, RankingEntry] = {}
        self._ids = itertools.count(1)

    def _rank(self, entry: RankingEntry) -> int:
        return 1 + sum(1 for e in self.entries.values() if e.points > entry.points)

    def _view(self, entry: RankingEntry) -> RankingEntry:
        return replace(entry, rank=self._rank(entry))

    async def add_points(
        self,
        user_id: str,
        name: str | None,
        amount: float,
        email: str | None = None,
        avatar: str | None = None,
    ) -> RankingEntry:
        entry = self.entries.get(user_id)
        if entry is None:
            entry = RankingEntry(
                id=next(self._ids),
                user_id=user_id,
                name=name or "Guest",
                points=amount,
                email=email,
                avatar=avatar,
            )
            self.entries[user_id] = entry
        else:
            entry.points += amount
            entry.name = name or entry.name
            entry.email = email or entry.email
            entry.avatar = avatar or entry.avatar
        return self._view(entry)

    async def get(self, user_id: str) -> RankingEntry | None:
        entry = self.entries.get(user_id)
        return self._view(entry) if entry else None

    async def get_top(self, limit: int) -> list[RankingEntry]:
        ordered = sorted(self.entries.values(), key=lambda e: (-e.points, e.id))
        return [self._view(e) for e in ordered[:limit]]

    async def count(self) -> int:
        return len(self.entries)


class FakeConfigRepository:
    def __init__(self, config: DisplayConfig | None = None) -> None:
        config = config or DisplayConfig()
        self.toggles: dict[str, Any] = config.toggles()
        self.presets: dict[str, PricingPreset] = {p.id: p for p in config.settings}

    async def get(self) -> DisplayConfig:
        return DisplayConfig(**self.toggles, settings=list(self.presets.values()))

    async def save_toggles(self, config: DisplayConfig) -> None:
        self.toggles = config.toggles()

    async def add_preset(self, preset: PricingPreset) -> None:
        self.presets[preset.id] = preset

    async def remove_preset(self, preset_id: str) -> bool:
        return self.presets.pop(preset_id, None) is not None


class FakeSubscriber:
    """Collects realtime messages; ``fail=True`` makes every send raise."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict[str, Any]] = []
        self.close_code: int | None = None

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.messages.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    def events(self, name: str) -> list[Any]:
        return [m["data"] for m in self.messages if m["event"] == name]


def make_record(
    record_id: str,
    received_at: datetime,
    *,
    type: str = "text",
    status: str = STATUS_PENDING,
    duration_seconds: int = 10,
    **fields: Any,
) -> QueueRecord:
    return QueueRecord(
        id=record_id,
        type=type,
        sender=fields.pop("sender", "Guest"),
        duration_seconds=duration_seconds,
        status=status,
        text=fields.pop("text", f"hello from {record_id}"),
        received_at=received_at,
        **fields,
    )


@dataclass
class Harness:
    """Service graph wired to in-memory repositories."""

    services: Services
    queue_repo: FakeQueueRepository
    history_repo: FakeHistoryRepository
    ranking_repo: FakeRankingRepository
    config_repo: FakeConfigRepository
    clock: FakeClock
    subscriber: FakeSubscriber
    media_dir: Path
