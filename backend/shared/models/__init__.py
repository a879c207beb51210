"""Shared data models for the display queue service."""

from .display_config import DisplayConfig, PricingPreset
from .display_history import HistoryRecord
from .display_queue import GiftItem, GiftOrder, QueueRecord
from .ranking import RankingEntry

__all__ = [
    "DisplayConfig",
    "GiftItem",
    "GiftOrder",
    "HistoryRecord",
    "PricingPreset",
    "QueueRecord",
    "RankingEntry",
]
