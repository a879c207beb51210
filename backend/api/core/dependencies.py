"""Dependency injection utilities for FastAPI

Services are built once at startup (they share the broadcaster, the slot lock
and the media store) and handed to routers through the getters below.
"""

import logging
from dataclasses import dataclass

import asyncpg
from fastapi import HTTPException

from core.config import Settings
from services import (
    ArchiveService,
    Broadcaster,
    DisplayNotifier,
    HistoryService,
    IntakeService,
    MediaStorage,
    PlaybackScheduler,
    QueueService,
    RankingService,
    SettingsService,
    WaitTimeEstimator,
)
from shared.clock import Clock, utcnow
from shared.repositories import (
    DisplayConfigRepository,
    HistoryRepository,
    QueueRepository,
    RankingRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    broadcaster: Broadcaster
    media: MediaStorage
    notifier: DisplayNotifier
    intake: IntakeService
    queue: QueueService
    playback: PlaybackScheduler
    estimator: WaitTimeEstimator
    history: HistoryService
    ranking: RankingService
    settings: SettingsService


def build_services(
    *,
    queue_repo: QueueRepository,
    history_repo: HistoryRepository,
    ranking_repo: RankingRepository,
    config_repo: DisplayConfigRepository,
    settings: Settings,
    broadcaster: Broadcaster | None = None,
    clock: Clock = utcnow,
) -> Services:
    """Wire the service graph on top of the given repositories."""
    broadcaster = broadcaster or Broadcaster()
    media = MediaStorage(settings.media_dir, settings.media_url_prefix)
    notifier = DisplayNotifier(broadcaster, queue_repo, config_repo)
    archive = ArchiveService(
        queue_repo, media, retention_seconds=settings.history_retention_seconds, clock=clock
    )
    ranking = RankingService(
        ranking_repo, broadcaster, broadcast_limit=settings.ranking_broadcast_limit
    )
    return Services(
        broadcaster=broadcaster,
        media=media,
        notifier=notifier,
        intake=IntakeService(queue_repo, config_repo, media, ranking, notifier, clock=clock),
        queue=QueueService(queue_repo, archive, notifier, clock=clock),
        playback=PlaybackScheduler(
            queue_repo,
            archive,
            notifier,
            expiry_grace_seconds=settings.playback_expiry_grace_seconds,
            clock=clock,
        ),
        estimator=WaitTimeEstimator(queue_repo, history_repo, clock=clock),
        history=HistoryService(history_repo, queue_repo, media, notifier, clock=clock),
        ranking=ranking,
        settings=SettingsService(config_repo, notifier),
    )


_services: Services | None = None


def init_services(pool: asyncpg.Pool, settings: Settings) -> Services:
    """Build the global service graph on a connected pool."""
    global _services
    _services = build_services(
        queue_repo=QueueRepository(pool),
        history_repo=HistoryRepository(pool),
        ranking_repo=RankingRepository(pool),
        config_repo=DisplayConfigRepository(pool),
        settings=settings,
    )
    logger.info("Services initialized")
    return _services


def set_services(services: Services | None) -> None:
    """Install (or clear) the global service graph. Used by tests."""
    global _services
    _services = services


def get_services() -> Services:
    if _services is None:
        raise HTTPException(status_code=503, detail="Database not ready")
    return _services


# ============================================
# Service Dependencies
# ============================================


def get_intake_service() -> IntakeService:
    return get_services().intake


def get_queue_service() -> QueueService:
    return get_services().queue


def get_playback_scheduler() -> PlaybackScheduler:
    return get_services().playback


def get_estimator() -> WaitTimeEstimator:
    return get_services().estimator


def get_history_service() -> HistoryService:
    return get_services().history


def get_ranking_service() -> RankingService:
    return get_services().ranking


def get_settings_service() -> SettingsService:
    return get_services().settings
