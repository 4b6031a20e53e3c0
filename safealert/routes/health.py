"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from safealert.core.container import ServiceContainer, get_container
from safealert.core.errors import StoreError
from safealert.core.settings import settings
from safealert.models.report import ReportStatus


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
async def database_health(container: ServiceContainer = Depends(get_container)):
    """
    Report store connectivity check.
    Runs the pending-queue query, the cheapest query every backend supports.
    """
    try:
        pending = await container.store.query_reports_by_status(ReportStatus.PENDING)
    except StoreError as e:
        raise HTTPException(
            status_code=503,
            detail=f"Report store unavailable: {str(e)}"
        )

    return {
        "status": "healthy",
        "store": type(container.store).__name__,
        "connected": True,
        "pending_count": len(pending),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
