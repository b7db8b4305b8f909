"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from halal_tools.core.config import get_settings
from halal_tools.core.database import get_db
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.services.metal_rate_service import MetalRateService
from halal_tools.utils.datetime_utils import utc_now

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint

    Returns:
        dict: Health status
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": get_settings().app_name,
    }


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Detailed health check with component status
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.app_name,
        "environment": settings.app_env,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful",
        }
    except SQLAlchemyError as e:
        logger.warning(f"Health check database failure: {e}")
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": "Database connection failed",
            "error": type(e).__name__,
        }
        return JSONResponse(status_code=503, content=health_status)

    latest = MetalRateService(db, settings=settings).get_latest()
    if latest is None:
        health_status["components"]["metal_rates"] = {"status": "empty"}
    else:
        health_status["components"]["metal_rates"] = {
            "status": "fallback" if latest.is_fallback else "live",
            "fetched_at": latest.fetched_at.isoformat(),
        }

    health_status["components"]["llm"] = {
        "status": "configured" if settings.together_api_key else "not_configured",
    }
    health_status["components"]["email"] = {
        "status": "configured" if settings.smtp_configured else "not_configured",
    }
    return health_status
