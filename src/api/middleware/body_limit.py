"""Reject oversized request bodies before they are read."""

from typing import Awaitable, Callable

import structlog
from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from core.exceptions import FileTooLargeError

logger = structlog.get_logger()

# Room for multipart boundaries, part headers and the small form fields
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Answer 400 ``FILE_TOO_LARGE`` when ``Content-Length`` exceeds the limit.

    Multipart forms are spooled in full before a route runs, so this is the
    only point where an oversized upload can be refused unread. Chunked
    requests without a length are left to the per-file check in the route.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int, max_file_bytes: int) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes
        self.max_file_bytes = max_file_bytes

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_body_bytes:
            exc = FileTooLargeError(int(declared), self.max_file_bytes)
            logger.warning(
                "request_body_too_large",
                path=request.url.path,
                content_length=int(declared),
                limit=self.max_body_bytes,
            )
            return ORJSONResponse(
                status_code=exc.status_code,
                content={
                    "error_code": exc.error_code.value,
                    "message": exc.message,
                    "details": exc.details,
                },
            )
        return await call_next(request)
