# backend/app/routes/v1/health.py
"""
Health check endpoints for monitoring and load balancer checks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies.database import get_db
from app.core.config import settings
from app.core.constants import API_VERSION, BRAND_NAME
from app.core.timezone_utils import isoformat_z, utc_now
from app.schemas.main_responses import HealthLiteResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Returns basic health status including service info, environment and
    database connectivity. Used by load balancers and monitoring systems.
    """
    database_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check database query failed: %s", exc)
        database_status = "error"

    return HealthResponse(
        status="healthy" if database_status == "ok" else "degraded",
        service=f"{BRAND_NAME.lower()}-sessions-api",
        version=API_VERSION,
        environment=settings.environment,
        database=database_status,
        timestamp=isoformat_z(utc_now()),
    )


@router.get("/lite", response_model=HealthLiteResponse)
def health_check_lite() -> HealthLiteResponse:
    """
    Lightweight health check that doesn't hit database.

    Use this for high-frequency health checks.
    """
    return HealthLiteResponse(status="ok")
