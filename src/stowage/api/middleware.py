"""Request middleware: timing header and body size cap."""

from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

_DOCUMENT_PATHS = ("/models", "/validate")
_MAX_BODY_DOCUMENT = 5 * 1024 * 1024
_MAX_BODY_DEFAULT = 1 * 1024 * 1024


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Add X-Request-Duration-Ms header with processing time."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        logger.debug(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


class RequestBodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies that exceed size limits.

    Document load and validate endpoints allow up to 5 MB, the same cap the
    YAML loader applies; everything else is capped at 1 MB. A declared
    Content-Length is checked first, then the streamed byte count, so
    chunked uploads cannot slip past the limit.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        limit = _MAX_BODY_DOCUMENT if path.endswith(_DOCUMENT_PATHS) else _MAX_BODY_DEFAULT

        content_length = request.headers.get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > limit:
            return _too_large(path, limit)

        if request.method in ("POST", "PUT", "PATCH"):
            chunks: list[bytes] = []
            total = 0
            async for chunk in request.stream():
                total += len(chunk)
                if total > limit:
                    return _too_large(path, limit)
                chunks.append(chunk)
            # Cache consumed body so downstream can call request.body()
            request._body = b"".join(chunks)  # noqa: SLF001

        return await call_next(request)


def _too_large(path: str, limit: int) -> JSONResponse:
    logger.warning("Rejected oversized request body for %s", path)
    return JSONResponse(
        status_code=413,
        content={"detail": f"Request body too large (max {limit // (1024 * 1024)} MB)"},
    )
