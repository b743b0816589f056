from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from partner_portal.api.deps import DB
from partner_portal.config import settings

router = APIRouter(tags=["Health"])


@router.get("")
async def health_check(db: DB):
    """Health check with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "connected"
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {e}"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
