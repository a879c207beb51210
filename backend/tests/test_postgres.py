"""SQL-level checks against a real Postgres.

Opt-in: set ``TEST_DATABASE_URL`` to a disposable database. Its display tables
are truncated before every test.
"""

import asyncio
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import asyncpg
import pytest
import pytest_asyncio

from fakes import make_record
from shared.migrations import MigrationRunner
from shared.repositories import QueueRepository, RankingRepository

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")

NOW = datetime(2026, 1, 1, 20, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def pool() -> AsyncGenerator[asyncpg.Pool, None]:
    try:
        pool = await asyncpg.create_pool(TEST_DATABASE_URL, min_size=1, max_size=5, timeout=5)
    except (OSError, asyncpg.PostgresError) as e:
        pytest.skip(f"Postgres unreachable: {e}")
    await MigrationRunner(pool).run_pending()
    async with pool.acquire() as conn:
        await conn.execute("TRUNCATE display_queue, display_history, rankings RESTART IDENTITY")
    yield pool
    await pool.close()


async def _approved(repo: QueueRepository, record_id: str, offset: int) -> None:
    await repo.add(make_record(record_id, NOW + timedelta(seconds=offset)))
    await repo.approve(record_id, NOW + timedelta(seconds=offset), None, None)


class TestQueueSql:
    @pytest.mark.asyncio
    async def test_concurrent_claims_leave_one_playing(self, pool: asyncpg.Pool) -> None:
        repo = QueueRepository(pool)
        ids = [f"r{i}" for i in range(5)]
        for i, record_id in enumerate(ids):
            await _approved(repo, record_id, i)

        results = await asyncio.gather(*(repo.set_playing(r, NOW) for r in ids))

        assert sum(1 for r in results if r is not None) == 1
        assert len(await repo.get_playing()) == 1

    @pytest.mark.asyncio
    async def test_claim_needs_free_slot_and_approval(self, pool: asyncpg.Pool) -> None:
        repo = QueueRepository(pool)
        await repo.add(make_record("pending", NOW))
        await _approved(repo, "a", 1)
        await _approved(repo, "b", 2)

        assert await repo.set_playing("pending", NOW) is None
        assert (await repo.set_playing("a", NOW)).status == "playing"
        assert await repo.set_playing("b", NOW) is None

    @pytest.mark.asyncio
    async def test_archive_respects_statuses_and_runs_once(self, pool: asyncpg.Pool) -> None:
        repo = QueueRepository(pool)
        await repo.add(make_record("q", NOW))

        kept = await repo.archive(
            "q",
            "completed",
            decision_at=NOW,
            retention_seconds=60,
            from_statuses=("approved", "playing"),
        )
        assert kept is None
        assert (await repo.get("q")).status == "pending"

        entry = await repo.archive("q", "rejected", decision_at=NOW, retention_seconds=60)
        assert entry.transaction_id == "q"
        assert await repo.archive("q", "rejected", decision_at=NOW, retention_seconds=60) is None


class TestRankingSql:
    @pytest.mark.asyncio
    async def test_rank_and_name_refresh(self, pool: asyncpg.Pool) -> None:
        repo = RankingRepository(pool)
        await repo.add_points("u1", "Mali", 50)
        await repo.add_points("u2", None, 80)
        entry = await repo.add_points("u1", None, 30)

        assert (entry.name, entry.points, entry.rank) == ("Mali", 80, 1)
        assert (await repo.get("u2")).name == "Guest"
        top = await repo.get_top(5)
        assert [(e.user_id, e.rank) for e in top] == [("u1", 1), ("u2", 1)]
        assert await repo.count() == 2
