from fastapi import APIRouter, Depends, status as http_status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
import logging
import time

from teamdesk.core.config import settings
from teamdesk.core.database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)

# Track server startup time for uptime calculation
SERVER_START_TIME = time.time()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check with database connectivity.

    Returns:
        - 200 OK: Service is healthy
        - 503 Service Unavailable: Database is unreachable
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": {
            "name": "TeamDesk Leave API",
            "uptime_seconds": round(time.time() - SERVER_START_TIME, 2),
        },
        "environment": settings.ENVIRONMENT,
        "database": {"status": "connected"},
    }
    http_code = http_status.HTTP_200_OK

    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database connection error in health check: {str(e)}", exc_info=True)
        health_status["status"] = "unhealthy"
        health_status["database"] = {"status": "disconnected", "error": "Database connection failed"}
        http_code = http_status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(status_code=http_code, content=health_status)
