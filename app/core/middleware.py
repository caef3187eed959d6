"""Middleware configuration for FastAPI application.

Provides:
- CORS middleware setup
- Trusted host middleware (production)
- Request timing middleware
- Request size limit
"""

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import PayloadTooLargeError, create_error_response
from app.core.logging import get_logger

logger = get_logger(__name__)

# Room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the limit.

    The check runs before the body is read, so oversize uploads never reach
    the multipart parser or the storage backend.
    """

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request, call_next):
        length = request.headers.get("content-length")
        try:
            size = int(length) if length is not None else None
        except ValueError:
            size = None

        if size is not None and size > self.max_bytes + MULTIPART_OVERHEAD_BYTES:
            exc = PayloadTooLargeError(self.max_bytes, size)
            logger.warning(
                "Request body too large",
                path=request.url.path,
                content_length=size,
                max_bytes=self.max_bytes,
            )
            return create_error_response(
                status_code=413,
                message=exc.message,
                error_code=exc.error_code,
                details=exc.details,
            )
        return await call_next(request)


def setup_cors_middleware(app: FastAPI) -> None:
    """Configure CORS middleware with settings from config.

    Args:
        app: FastAPI application instance
    """
    logger.info(
        "CORS configuration",
        environment=settings.ENVIRONMENT,
        origins=settings.CORS_ORIGINS,
        credentials=settings.CORS_CREDENTIALS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
        expose_headers=["Content-Disposition", "Retry-After", "X-Process-Time"],
    )


def setup_trusted_host_middleware(app: FastAPI) -> None:
    """Configure trusted host middleware for production.

    Args:
        app: FastAPI application instance
    """
    if not settings.is_production or settings.ALLOWED_HOSTS == ["*"]:
        return

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS,
    )


def setup_timing_middleware(app: FastAPI) -> None:
    """Add request timing middleware.

    Args:
        app: FastAPI application instance
    """

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response


def setup_size_limit_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.MAX_UPLOAD_SIZE)


def setup_all_middleware(app: FastAPI) -> None:
    """Setup all middleware in correct order.

    Middleware added last runs first, so CORS is added last to answer
    preflight requests before anything else.

    Args:
        app: FastAPI application instance
    """
    setup_size_limit_middleware(app)

    setup_timing_middleware(app)

    # Trusted hosts (production only)
    setup_trusted_host_middleware(app)

    setup_cors_middleware(app)
