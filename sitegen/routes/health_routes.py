"""
Health check and service info routes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from datetime import datetime

from sitegen.models.base import get_db_dependency
from sitegen.schemas.response_schemas import HealthResponse
from config import get_settings
from sitegen.utils.logger import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db_dependency)):
    """
    Check health of all system components.

    Only the database is probed; the model gateway and hosting provider are
    reported as configured or not.

    Returns:
        HealthResponse with status of each service
    """
    services_status = {}
    settings = get_settings()

    try:
        db.execute(text("SELECT 1"))
        services_status["database"] = "healthy"
        logger.debug("Database health check: OK")
    except Exception as e:
        services_status["database"] = "unavailable"
        logger.error(f"Database health check error: {e}")

    if settings.aws_access_key_id and settings.aws_access_key_id != "your_aws_access_key_id_here":
        services_status["bedrock"] = "configured"
    else:
        services_status["bedrock"] = "not_configured"

    # Netlify is optional: without it deploys are mocked
    services_status["netlify"] = "configured" if settings.netlify_configured else "not_configured"

    if services_status["database"] != "healthy":
        overall_status = "unhealthy"
    elif services_status["bedrock"] != "configured":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        services=services_status,
        timestamp=datetime.utcnow().isoformat()
    )


@router.get("/")
def root():
    """
    Root endpoint with API information.

    Returns:
        Dict with API info
    """
    return {
        "name": "SiteGen API",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "agent": "/api/agent",
            "chat": "/api/chat",
            "conversations": "/api/conversations",
            "generations": "/api/generations",
            "update_html": "/api/generations/update-html",
            "deploy": "/api/deploy",
            "check_status": "/api/deploy/check-status",
            "manual_status": "/api/deploy/status",
            "delete_deployment": "/api/deploy/delete",
            "docs": "/docs"
        }
    }
