"""API Routers package

This package contains all API route handlers.
Routers are organized by feature domain.
"""

from . import (
    history_router,
    queue_router,
    rankings_router,
    realtime_router,
    settings_router,
    submissions_router,
)

__all__ = [
    "history_router",
    "queue_router",
    "rankings_router",
    "realtime_router",
    "settings_router",
    "submissions_router",
]
