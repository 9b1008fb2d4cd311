# backend/app/main.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import contextlib
import logging
import threading
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.constants import ALLOWED_ORIGINS, API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import SessionLocal
from .errors import register_error_handlers
from .routes.v1 import (
    availability as availability_v1,
    health as health_v1,
    prometheus as prometheus_v1,
    sessions as sessions_v1,
)
from .services.booking_lock_service import BookingLockService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def _booking_lock_sweeper_sync(shutdown_event: threading.Event) -> None:
    """Delete expired booking reservations on a fixed interval in a dedicated thread."""

    interval = max(1, int(settings.booking_lock_sweep_interval_seconds))

    # wait() returns True once shutdown is requested
    while not shutdown_event.wait(interval):
        db = SessionLocal()
        try:
            BookingLockService(db).purge_expired()
        except Exception as exc:
            logger.error(f"Booking lock sweep failed: {exc}")
            db.rollback()
        finally:
            db.close()


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    # Startup
    logger.info(f"{BRAND_NAME} Sessions API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    sweeper_task: asyncio.Task[None] | None = None
    sweeper_stop_event: threading.Event | None = None
    if settings.booking_lock_sweeper_enabled and not settings.is_testing:
        sweeper_stop_event = threading.Event()
        sweeper_task = asyncio.create_task(
            asyncio.to_thread(_booking_lock_sweeper_sync, sweeper_stop_event)
        )
        logger.info(
            "Booking lock sweeper started (interval=%ss, ttl=%ss)",
            settings.booking_lock_sweep_interval_seconds,
            settings.booking_lock_seconds,
        )

    yield

    # Shutdown
    logger.info(f"{BRAND_NAME} Sessions API shutting down...")

    if sweeper_task is not None:
        if sweeper_stop_event is not None:
            sweeper_stop_event.set()
        with contextlib.suppress(BaseException):
            await sweeper_task


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(sessions_v1.router, prefix="/sessions")
api_v1.include_router(availability_v1.router)
api_v1.include_router(health_v1.router, prefix="/health")
api_v1.include_router(prometheus_v1.router, prefix="/metrics")

app.include_router(api_v1)

# ASGI entrypoint alias used by run.py and uvicorn
fastapi_app = app
