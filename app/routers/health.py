"""
Health check endpoint.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db, check_session
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", summary="Health check")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Report service status and database connectivity.

    Returns 503 when the database does not answer.
    """
    db_healthy = await check_session(db)
    if not db_healthy:
        logger.warning("Health check failed: database unreachable")

    return JSONResponse(
        status_code=status.HTTP_200_OK if db_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "OK" if db_healthy else "UNAVAILABLE",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "database": "connected" if db_healthy else "unreachable"
        }
    )
