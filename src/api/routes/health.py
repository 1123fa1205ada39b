"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies.services import get_cleanup_queue
from core.config import settings
from domain.services.asset_cleanup import AssetCleanupQueue
from infrastructure.database.session import get_async_session

router = APIRouter(tags=["health"])

APP_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    environment: str
    database: str | None = None
    storage: str | None = None
    pending_cleanups: int | None = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check() -> HealthResponse:
    """Liveness probe. Does not touch the database or the object store."""
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        timestamp=_now(),
        environment=settings.app_env,
    )


@router.get(
    "/health/detailed",
    response_model=HealthResponse,
    summary="Detailed health check",
)
async def detailed_health_check(
    db: AsyncSession = Depends(get_async_session),
    cleanup_queue: AssetCleanupQueue = Depends(get_cleanup_queue),
) -> HealthResponse:
    """
    Database connectivity, storage configuration and background cleanup backlog.

    The object store is not probed; only its configuration is reported.
    """
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {type(e).__name__}"

    if settings.supabase_url and settings.supabase_service_role_key:
        storage_status = f"configured: {settings.storage_bucket}"
    else:
        storage_status = "not configured"

    healthy = db_status == "healthy" and storage_status != "not configured"

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=APP_VERSION,
        timestamp=_now(),
        environment=settings.app_env,
        database=db_status,
        storage=storage_status,
        pending_cleanups=cleanup_queue.pending_count,
    )
