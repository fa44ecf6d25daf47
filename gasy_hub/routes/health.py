"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from gasy_hub.core.settings import settings
from gasy_hub.db.database import get_engine, ping_database


router = APIRouter(prefix="/api/health", tags=["Health"])


@router.get("")
async def health_check(request: Request):
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "websocketClients": request.app.state.connection_manager.active_count,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
def database_health():
    """
    Database connectivity check.
    Runs a trivial query against the configured database.
    """
    try:
        ping_database()
        return {
            "status": "healthy",
            "database": get_engine().dialect.name,
            "connected": True,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
