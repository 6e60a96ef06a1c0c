import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from ridequeue.db.database import get_db_session
from ridequeue.core.cache import get_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root_health_check():
    return {"status": "ok"}


@router.get("/db")
async def db_health_check(session: AsyncSession = Depends(get_db_session)):
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {e}",
        )


@router.get("/redis")
async def redis_health_check():
    """
    Redis is optional; without it locks are process-local.
    """
    cache = await get_cache()
    if cache.connected:
        return {"status": "ok", "redis": "connected"}
    return {"status": "unavailable", "redis": "not connected", "locks": "in-process"}
