"""
Monitoring and Health Check Endpoints
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from refrr.core.config import settings
from refrr.core.database import get_database
from refrr.models.common import HealthStatus

router = APIRouter()
logger = structlog.get_logger()


@router.get("/health", response_model=HealthStatus, response_model_exclude_none=True)
async def health_check():
    """Basic health check endpoint"""
    return HealthStatus(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.VERSION,
    )


@router.get("/health/detailed", response_model=HealthStatus)
async def detailed_health_check(db = Depends(get_database)):
    """Detailed health check with dependency status"""
    health_status = HealthStatus(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.VERSION,
        dependencies={},
    )

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health_status.dependencies["database"] = {"status": "ok"}
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        health_status.dependencies["database"] = {"status": "error"}
        health_status.status = "degraded"

    return health_status
