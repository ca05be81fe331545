# backend/gymbook/main.py
import asyncio
from contextlib import asynccontextmanager
import contextlib
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import tasks  # noqa: F401  registers Celery tasks for enqueue_task
from .core.abuse_guard import AbuseGuard, RedisCounterStore, build_abuse_guard
from .core.config import is_running_tests, settings
from .core.constants import API_VERSION, BRAND_NAME
from .database import SessionLocal, init_db
from .errors import register_error_handlers
from .routes.v1 import admin, auth, bookings, classes, content, health, members
from .services.class_calendar_service import ClassCalendarService

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

ABUSE_PURGE_INTERVAL_SECONDS = 3600


def _bootstrap_calendar() -> None:
    """Seed default templates on an empty database and materialize upcoming weeks."""
    db = SessionLocal()
    try:
        calendar = ClassCalendarService(db)
        seeded = calendar.seed_default_templates()
        created = calendar.generate_weekly_classes()
        logger.info(f"Calendar ready: {seeded} templates seeded, {len(created)} classes generated")
    finally:
        db.close()


async def _purge_abuse_counters(guard: AbuseGuard) -> None:
    """Hourly sweep of yesterday's in-process counters."""
    while True:
        await asyncio.sleep(ABUSE_PURGE_INTERVAL_SECONDS)
        try:
            await guard.purge_stale()
        except Exception as e:
            logger.error(f"Abuse counter purge failed: {e}")


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    await asyncio.to_thread(init_db)
    await asyncio.to_thread(_bootstrap_calendar)

    guard: AbuseGuard = app.state.abuse_guard
    purge_task: Optional[asyncio.Task[None]] = None
    if not isinstance(guard.store, RedisCounterStore):
        # Redis counters are swept by the Celery beat task instead
        purge_task = asyncio.create_task(_purge_abuse_counters(guard))

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    if purge_task is not None:
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    if isinstance(guard.store, RedisCounterStore):
        await guard.store.close()


def create_app(abuse_guard: Optional[AbuseGuard] = None) -> FastAPI:
    app = FastAPI(
        title=f"{BRAND_NAME} API",
        description="Class booking, membership and finance API for the club",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    app.state.abuse_guard = abuse_guard or build_abuse_guard()

    # Register unified error envelope handlers
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
    logger.info("CORS allow_origins=%s allow_credentials=%s", settings.cors_origins, True)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(auth.router, prefix="/auth")
    api_v1.include_router(members.router, prefix="/members")
    api_v1.include_router(classes.router, prefix="/classes")
    api_v1.include_router(bookings.router, prefix="/bookings")
    api_v1.include_router(admin.router, prefix="/admin")
    api_v1.include_router(content.router)
    api_v1.include_router(health.router)
    app.include_router(api_v1)

    return app


app = create_app()

__all__ = ["app", "create_app"]
