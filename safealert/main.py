"""
SafeAlert - FastAPI Application Entry Point

Thin HTTP shell over the SafeAlert core for a device UI: report submission,
moderation, notification preferences and the polling engine.

DESIGN PRINCIPLES:
- Nothing is shown to other users until a moderator approves it
- Nearby alerts never depend on push delivery: each device polls for itself
- Routes translate HTTP only; behaviour lives in services
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from safealert.core.container import get_container
from safealert.core.errors import (
    InvalidTransitionError,
    NotificationError,
    NotModeratorError,
    PreconditionError,
    ReportNotFoundError,
    SafeAlertError,
    StoreError,
    UserNotAuthenticatedError,
)
from safealert.core.settings import settings
from safealert.routes import device, health, moderation, notifications, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Community incident reporting with moderated, proximity-based safety alerts",
    debug=settings.DEBUG
)


def _status_for(exc: SafeAlertError) -> int:
    if isinstance(exc, UserNotAuthenticatedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, NotModeratorError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, PreconditionError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ReportNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, InvalidTransitionError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, StoreError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, NotificationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(SafeAlertError)
async def safealert_exception_handler(request: Request, exc: SafeAlertError):
    """Map domain errors to HTTP statuses; the message is user-facing."""
    code = _status_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {code}: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Internal server error: {str(exc)}"}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Ask for notification permission once the container is built."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    container = get_container()
    await container.polling.request_permission()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")
    get_container().polling.stop_polling()


# Include routers
app.include_router(health.router)
app.include_router(reports.router)
app.include_router(moderation.router)
app.include_router(notifications.router)
app.include_router(device.router)


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
    }
