"""Process-wide database manager used by the API lifespan and dependencies."""

import logging

from core.config import Settings
from shared.database import DatabaseManager, PoolConfig

logger = logging.getLogger(__name__)

_db_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager | None:
    """Get the global database manager, or None before startup."""
    return _db_manager


def init_database_manager(settings: Settings) -> DatabaseManager:
    """Create the global database manager from settings (does not connect)."""
    global _db_manager
    _db_manager = DatabaseManager(
        settings.database_url,
        PoolConfig(max_size=settings.database_pool_max, ssl=settings.database_ssl),
    )
    return _db_manager
