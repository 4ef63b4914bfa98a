"""
Health check endpoint.
Verifies database connectivity.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stylizer.database import check_database, get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint (no auth).
    Returns server status and database connectivity; 503 when the
    database cannot be reached.
    """
    health_status = {
        "success": True,
        "status": "healthy",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "unknown",
    }

    try:
        await check_database(db)
        health_status["database"] = "connected"
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Health check database error: {e}", extra={"event": "health_db_error"})
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"
        health_status["success"] = False
        return JSONResponse(status_code=503, content=health_status)

    return health_status
