import time

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from casefeed.core.database import get_session
from casefeed.schemas.health import HealthResponse

router = APIRouter()
logger = structlog.get_logger()

_start_time = time.monotonic()


@router.get("/api/health")
async def health_check(session: AsyncSession = Depends(get_session)) -> HealthResponse:
    """Service health check. No auth required."""
    try:
        await session.execute(text("SELECT 1"))
        db_ok = True
    except Exception as exc:
        logger.warning("health_db_unreachable", error=str(exc))
        db_ok = False

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        database="connected" if db_ok else "disconnected",
        uptime_seconds=round(time.monotonic() - _start_time, 1),
    )
