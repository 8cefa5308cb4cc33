"""Health check endpoint."""

import logging

from litestar import get
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger("Selah.health")


@get("/health")
async def health_check(session: AsyncSession) -> dict:
    """Report whether the database answers."""
    try:
        await session.execute(text("SELECT 1"))
        db_healthy = True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        db_healthy = False

    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": db_healthy,
    }
