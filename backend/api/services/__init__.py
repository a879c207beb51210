"""Services layer - Business logic

Services are initialized with their repositories and accessed through
dependency injection (see ``core.dependencies``).
"""

from .archive_service import ArchiveService
from .broadcaster import Broadcaster
from .estimator import OrderStatus, WaitTimeEstimator
from .history_service import HistoryService
from .intake_service import GiftSubmission, IntakeService, Submission, Upload
from .media_storage import MediaStorage
from .notifier import DisplayNotifier
from .playback import PlaybackResult, PlaybackScheduler
from .queue_service import QueueService
from .ranking_service import RankingBoard, RankingService
from .settings_service import SettingsService

__all__ = [
    "ArchiveService",
    "Broadcaster",
    "DisplayNotifier",
    "GiftSubmission",
    "HistoryService",
    "IntakeService",
    "MediaStorage",
    "OrderStatus",
    "PlaybackResult",
    "PlaybackScheduler",
    "QueueService",
    "RankingBoard",
    "RankingService",
    "SettingsService",
    "Submission",
    "Upload",
    "WaitTimeEstimator",
]
