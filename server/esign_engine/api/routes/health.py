from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine import __version__
from esign_engine.api.dependencies.database import get_db
from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import utcnow

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Liveness plus a database round trip."""
    payload: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "version": __version__,
        "checks": {},
    }
    try:
        await db.execute(text("SELECT 1"))
        payload["checks"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as exc:
        logger.error("health.database_failed", error=str(exc))
        payload["checks"]["database"] = {"status": "unhealthy", "error": str(exc)}
        payload["status"] = "unhealthy"

    status_code = status.HTTP_200_OK if payload["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=payload, status_code=status_code)
