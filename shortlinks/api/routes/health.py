"""Health check endpoints for monitoring application status."""

import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.config import settings
from shortlinks.db.session import get_db

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of the service and its database"
)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check that the service can reach its database."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "components": {}
    }

    try:
        start_time = time.time()
        result = await db.execute(text("SELECT 1"))
        if result.scalar_one() == 1:
            health_status["components"]["database"] = {
                "status": "healthy",
                "latency_ms": round((time.time() - start_time) * 1000, 2)
            }
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health_status)

    return health_status
