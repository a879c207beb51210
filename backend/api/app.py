"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from core.config import Settings, get_settings
from core.database import get_database_manager, init_database_manager
from core.dependencies import Services, init_services, set_services
from core.errors import register_exception_handlers
from core.logging import setup_logging
from routers import (
    history_router,
    queue_router,
    rankings_router,
    realtime_router,
    settings_router,
    submissions_router,
)
from shared.migrations import MigrationRunner

logger = logging.getLogger(__name__)

# Track server start time
_start_time: float = 0.0
_background_tasks: list[asyncio.Task] = []


async def _heartbeat(interval: int = 300) -> None:
    """Log uptime and DB status every *interval* seconds"""
    while True:
        await asyncio.sleep(interval)
        uptime = int(time.time() - _start_time)
        db_manager = get_database_manager()
        db_ok = db_manager is not None and await db_manager.check_health()
        logger.info(f"Heartbeat: uptime={uptime}s, db={db_ok}")


async def _sweep_loop(name: str, interval: float, sweep: Callable[[], Awaitable[object]]) -> None:
    """Run *sweep* every *interval* seconds; one failed run never stops the loop.

    On repeated failure, backs off to avoid flooding logs.
    """
    fail_count = 0
    delay = interval
    while True:
        await asyncio.sleep(delay)
        try:
            await sweep()
            if fail_count > 0:
                logger.info(f"{name} recovered after {fail_count} failures")
            fail_count = 0
            delay = interval
        except asyncio.CancelledError:
            break
        except Exception as e:
            fail_count += 1
            if fail_count <= 3:
                logger.warning(f"{name} failed ({fail_count}): {type(e).__name__}: {e}")
            elif fail_count == 4:
                logger.warning(f"{name} still failing ({fail_count}x), suppressing until recovery")
            delay = min(interval * (2 ** min(fail_count - 1, 3)), max(interval, 120))


def _start_background_tasks(services: Services, settings: Settings) -> None:
    if settings.enable_keep_alive:
        _background_tasks.append(asyncio.create_task(_heartbeat(settings.keep_alive_interval)))
        logger.info(f"Heartbeat started (interval={settings.keep_alive_interval}s)")

    if settings.playback_expiry_enabled:
        _background_tasks.append(
            asyncio.create_task(
                _sweep_loop(
                    "Playback expiry sweep",
                    settings.playback_sweep_interval,
                    services.playback.expire_overdue,
                )
            )
        )
        logger.info(
            f"Playback expiry sweep started (grace={settings.playback_expiry_grace_seconds}s)"
        )

    _background_tasks.append(
        asyncio.create_task(
            _sweep_loop(
                "History retention sweep",
                settings.history_sweep_interval,
                services.history.purge_expired,
            )
        )
    )
    _background_tasks.append(
        asyncio.create_task(
            _sweep_loop(
                "Media sweep",
                settings.media_sweep_interval,
                lambda: services.history.sweep_media(settings.media_temp_max_age_seconds),
            )
        )
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time
    _start_time = time.time()

    settings = get_settings()

    # Startup
    logger.info("Starting display queue server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Frontend URL: {settings.frontend_url}")

    # Without the database nothing can be queued, so a failed connect is fatal
    db_manager = init_database_manager(settings)
    try:
        await db_manager.connect()
    except Exception as e:
        logger.critical(f"Database unreachable at startup: {type(e).__name__}: {e}")
        raise SystemExit(1) from e

    if settings.run_migrations:
        try:
            await MigrationRunner(db_manager.pool).run_pending()
        except Exception as e:
            logger.critical(f"Migrations failed: {type(e).__name__}: {e}")
            await db_manager.disconnect()
            raise SystemExit(1) from e

    services = init_services(db_manager.pool, settings)
    services.media.ensure_root()

    _start_background_tasks(services, settings)

    yield

    # Shutdown
    logger.info("Shutting down display queue server")
    for task in _background_tasks:
        task.cancel()
    await asyncio.gather(*_background_tasks, return_exceptions=True)
    _background_tasks.clear()
    set_services(None)
    try:
        await db_manager.disconnect()
        logger.info("Database disconnected")
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def create_app(settings: Settings | None = None, *, use_lifespan: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="Display Queue API",
        description="Venue display queue: intake, moderation, playback and rankings",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    app.include_router(submissions_router.router)
    app.include_router(queue_router.router)
    app.include_router(history_router.router)
    app.include_router(rankings_router.router)
    app.include_router(settings_router.router)
    app.include_router(realtime_router.router)

    # Uploaded media
    settings.media_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.media_url_prefix,
        StaticFiles(directory=settings.media_dir, check_dir=False),
        name="uploads",
    )

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "display-queue-api", "status": "running"}

    # Liveness probe, never touches the database
    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - _start_time),
        }

    # Detailed status endpoint (includes DB health)
    @app.get("/status")
    async def status():
        """Readiness endpoint with a live DB check"""
        db_manager = get_database_manager()
        db_ok = db_manager is not None and await db_manager.check_health()
        return {
            "service": "display-queue-api",
            "version": "1.0.0",
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    # Ping endpoint
    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        """Ping endpoint"""
        return "pong"

    logger.info("FastAPI application configured")

    return app
