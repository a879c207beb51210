"""Import JSON exports from older deployments into the current schema.

Reads ``check-history.json`` (history in any of the legacy shapes) and
``rankings.json`` (name/points rows) from a directory. Records that already
exist are skipped, so the import can be re-run.

Usage:
    python import_legacy.py <export_dir> [--dry]
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncpg
from dotenv import load_dotenv

from shared.errors import ValidationError
from shared.legacy import normalize_history, normalize_ranking
from shared.repositories import HistoryRepository, RankingRepository

load_dotenv(Path(__file__).resolve().parent.parent / "api" / ".env")

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("import_legacy")

# Matches Settings.history_retention_seconds default
RETENTION_SECONDS = int(os.getenv("HISTORY_RETENTION_SECONDS", "172800"))


def _load(path: Path) -> list[dict]:
    if not path.exists():
        logger.info(f"{path.name} not found, skipping")
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise SystemExit(f"{path.name}: expected a JSON array")
    return data


async def import_history(repo: HistoryRepository, rows: list[dict], dry_run: bool) -> int:
    imported = 0
    for raw in rows:
        try:
            entry = normalize_history(raw, retention_seconds=RETENTION_SECONDS)
        except ValidationError as e:
            logger.warning(f"Skipping history row: {e}")
            continue
        if await repo.find_by_transaction(entry.transaction_id):
            continue
        if not dry_run and await repo.add(entry) is None:
            continue
        imported += 1
    return imported


async def import_rankings(repo: RankingRepository, rows: list[dict], dry_run: bool) -> int:
    imported = 0
    for raw in rows:
        try:
            user_id, name, points = normalize_ranking(raw)
        except ValidationError as e:
            logger.warning(f"Skipping ranking row: {e}")
            continue
        if points <= 0 or await repo.get(user_id):
            continue
        if not dry_run:
            await repo.add_points(user_id, name, points)
        imported += 1
    return imported


async def main(export_dir: Path, dry_run: bool) -> int:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set. Check api/.env or environment variables.")
        return 1

    history_rows = _load(export_dir / "check-history.json")
    ranking_rows = _load(export_dir / "rankings.json")

    pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2, statement_cache_size=0)
    try:
        history = await import_history(HistoryRepository(pool), history_rows, dry_run)
        rankings = await import_rankings(RankingRepository(pool), ranking_rows, dry_run)
    finally:
        await pool.close()

    verb = "Would import" if dry_run else "Imported"
    print(f"{verb} {history}/{len(history_rows)} history and {rankings}/{len(ranking_rows)} ranking rows.")
    return 0


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    if len(args) != 1:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(Path(args[0]), "--dry" in sys.argv)))
