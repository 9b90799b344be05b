"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.dependencies import get_database
from app.db.session import Database

router = APIRouter()


@router.get("")
async def health_check():
    """Basic liveness check."""
    return {"status": "healthy", "service": settings.PROJECT_NAME}


@router.get("/ready")
async def readiness_check(database: Database = Depends(get_database)):
    """Readiness check including the database connection."""
    try:
        with database.session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": settings.PROJECT_NAME, "database": "unavailable"},
        )
    return {"status": "healthy", "service": settings.PROJECT_NAME, "database": "ok"}
