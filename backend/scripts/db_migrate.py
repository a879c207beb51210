"""Apply display-queue schema migrations.

Usage:
    python db_migrate.py          # Apply every pending migration
    python db_migrate.py --dry    # List pending migrations only
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

# Ensure backend/ is on sys.path so shared.* is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncpg
from dotenv import load_dotenv

from shared.migrations import MigrationRunner

# DATABASE_URL normally lives in api/.env
load_dotenv(Path(__file__).resolve().parent.parent / "api" / ".env")

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def main(dry_run: bool) -> int:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set. Check api/.env or environment variables.")
        return 1

    pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2, statement_cache_size=0)
    try:
        runner = MigrationRunner(pool)
        if dry_run:
            pending = await runner.pending()
            applied = await runner.get_applied()
            print(f"Applied: {len(applied)} | Pending: {len(pending)}")
            for version in pending:
                print(f"  -> {version}")
            if not pending:
                print("Database is up to date.")
            return 0

        newly_applied = await runner.run_pending()
        print(f"Applied {len(newly_applied)} migration(s)." if newly_applied else "No pending migrations.")
        return 0
    finally:
        await pool.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main("--dry" in sys.argv)))
