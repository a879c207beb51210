"""Repository layer: one class per table group, plain SQL over asyncpg."""

from .display_config import DisplayConfigRepository
from .display_history import HistoryRepository
from .display_queue import QueueRepository
from .ranking import RankingRepository

__all__ = [
    "DisplayConfigRepository",
    "HistoryRepository",
    "QueueRepository",
    "RankingRepository",
]
