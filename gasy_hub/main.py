"""
Gasy Hub - FastAPI Application Entry Point

Community safety alerts for Malagasy neighbourhoods: residents post SOS
alerts, neighbours confirm or reject them, and everyone connected gets
new alerts pushed live.

DESIGN PRINCIPLES:
- The community decides: votes move an alert out of "pending"
- One vote per user per alert, enforced by the database
- Admins can override, and every status change is audited
- Live push is best-effort; the REST feed is the source of truth
"""

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gasy_hub.core.errors import GasyHubError
from gasy_hub.core.logging_config import configure_logging
from gasy_hub.core.settings import settings
from gasy_hub.db.database import initialize_database
from gasy_hub.routes import admin, alerts, health, users, ws
from gasy_hub.services.notification_service import ConnectionManager

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Community safety alerts with neighbour validation",
    debug=settings.DEBUG
)

app.state.connection_manager = ConnectionManager()


@app.exception_handler(GasyHubError)
async def domain_exception_handler(request: Request, exc: GasyHubError):
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Missing or malformed request fields are client errors (400), like
    domain ValidationErrors. "detail" is a readable message; the raw
    pydantic errors are kept under "errors".
    """
    errors = exc.errors()
    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _describe_validation_errors(errors), "errors": jsonable_encoder(errors)}
    )


def _describe_validation_errors(errors) -> str:
    parts = []
    for error in errors:
        # Drop the leading "body" / "query" / "header" segment
        loc = [str(p) for p in error.get("loc", ())[1:]]
        field = ".".join(loc) if loc else "request"
        if error.get("type") == "missing":
            parts.append(f"{field} is required")
        else:
            parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# CORS configuration - only the origins listed in CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize logging, the database and the upload directory.
    """
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    initialize_database()
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(alerts.router)
app.include_router(users.router)
app.include_router(users.stats_router)
app.include_router(admin.router)
app.include_router(ws.router)

# Uploaded media, served as /uploads/<filename>
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/api/health",
        "websocket": "/ws"
    }
