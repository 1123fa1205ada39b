"""Main FastAPI application entry point."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.dependencies.services import get_cleanup_queue, get_http_client
from api.exception_handlers import setup_exception_handlers
from api.middleware.body_limit import MULTIPART_OVERHEAD_BYTES, BodySizeLimitMiddleware
from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.request_id import RequestIDMiddleware
from api.middleware.security import SecurityHeadersMiddleware
from api.router import router as api_router
from api.routes.health import APP_VERSION
from api.routes.health import router as health_router
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler
from infrastructure.database.session import engine

setup_logging()
logger = structlog.get_logger()

DESCRIPTION = """\
Passwordless sign-in, user profiles, and profile/banner images kept in
Supabase Storage. Replacing an image removes the one it supersedes.

Profile and image endpoints expect `Authorization: Bearer <access_token>`.
"""

OPENAPI_TAGS = [
    {"name": "health", "description": "Liveness and dependency status"},
    {"name": "auth", "description": "Magic links and code exchange"},
    {"name": "profile", "description": "Read and update a profile"},
    {"name": "images", "description": "Upload, replace and delete images"},
]


async def drain_cleanups() -> None:
    """Give scheduled deletes of superseded images a bounded chance to finish."""
    cleanup_queue = get_cleanup_queue()
    if not cleanup_queue.pending_count:
        return
    try:
        async with asyncio.timeout(settings.remote_call_timeout_seconds):
            outcomes = await cleanup_queue.drain()
    except TimeoutError:
        logger.warning("asset_cleanup_drain_timeout", pending=cleanup_queue.pending_count)
        return
    logger.info(
        "asset_cleanup_drained",
        completed=sum(1 for o in outcomes if o.succeeded),
        failed=sum(1 for o in outcomes if not o.succeeded),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("application_started", environment=settings.app_env, bucket=settings.storage_bucket)
    yield
    await drain_cleanups()
    await get_http_client().aclose()
    await engine.dispose()
    logger.info("application_stopped")


def add_middleware(app: FastAPI) -> None:
    """Register middleware; the last one added wraps all the others."""
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        BodySizeLimitMiddleware,
        max_body_bytes=settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES,
        max_file_bytes=settings.max_upload_bytes,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description=DESCRIPTION,
        version=APP_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        openapi_tags=OPENAPI_TAGS,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    setup_exception_handlers(app)
    add_middleware(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
