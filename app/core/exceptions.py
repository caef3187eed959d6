import uuid
import traceback
from typing import Any, Dict, Optional
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from google.api_core.exceptions import GoogleAPIError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class DocShareError(Exception):
    """Base exception for the document share application."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(self.message)


# Caller-input and authorization faults


class UnauthorizedError(DocShareError):
    """No valid session for a route that requires one."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED")


class BadRequestError(DocShareError):
    """Missing or malformed request input."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "BAD_REQUEST", details)


class AccessDeniedError(DocShareError):
    """Caller may not read the requested resource."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "ACCESS_DENIED")


class PayloadTooLargeError(DocShareError):
    """Upload exceeds the configured maximum size."""

    def __init__(self, max_bytes: int, actual_bytes: Optional[int] = None):
        details = {"max_bytes": max_bytes}
        if actual_bytes is not None:
            details["actual_bytes"] = actual_bytes
        super().__init__(
            f"File exceeds maximum size of {max_bytes // (1024 * 1024)}MB",
            "PAYLOAD_TOO_LARGE",
            details,
        )


class RateLimitError(DocShareError):
    """Rate limiting errors."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = 0):
        super().__init__(message, "RATE_LIMITED", {"retry_after": retry_after})
        self.retry_after = retry_after


class NotAccessibleError(DocShareError):
    """A stored reference resolved to something that is not a fetchable URL."""

    def __init__(self, message: str = "Document not accessible"):
        super().__init__(message, "NOT_ACCESSIBLE")


# Backend and infrastructure faults


class BackendUnavailableError(DocShareError):
    """Storage backend was never initialized (missing credentials)."""

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(
            message, "BACKEND_UNAVAILABLE", {"backend": backend} if backend else None
        )


class StorageError(DocShareError):
    """Base class for errors reported by the storage backend."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "STORAGE_ERROR", {"path": path} if path else None)
        self.path = path


class UploadFailedError(StorageError):
    """Backend rejected an upload."""


class DeleteFailedError(StorageError):
    """Backend rejected a delete."""


class SignFailedError(StorageError):
    """Backend could not produce a signed URL."""


class PresignFailedError(DocShareError):
    """The presign service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message,
            "PRESIGN_FAILED",
            {"status_code": status_code} if status_code else None,
        )
        self.status_code = status_code


class UnknownStorageTypeError(DocShareError):
    """A document carries a storage tag no resolver branch handles."""

    def __init__(self, storage_type: Any):
        super().__init__(
            f"Unknown storage type: {storage_type!r}",
            "UNKNOWN_STORAGE_TYPE",
            {"storage_type": str(storage_type)},
        )


STATUS_CODE_MAP = {
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "BAD_REQUEST": status.HTTP_400_BAD_REQUEST,
    "ACCESS_DENIED": status.HTTP_403_FORBIDDEN,
    "NOT_ACCESSIBLE": status.HTTP_404_NOT_FOUND,
    "PAYLOAD_TOO_LARGE": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "BACKEND_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "STORAGE_ERROR": status.HTTP_502_BAD_GATEWAY,
    "PRESIGN_FAILED": status.HTTP_502_BAD_GATEWAY,
    "UNKNOWN_STORAGE_TYPE": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Infrastructure faults keep their detail in the logs only
GENERIC_MESSAGES = {
    "BACKEND_UNAVAILABLE": "Storage backend is unavailable",
    "STORAGE_ERROR": "Storage operation failed",
    "PRESIGN_FAILED": "Failed to resolve file URL",
    "UNKNOWN_STORAGE_TYPE": "An unexpected error occurred",
    "INTERNAL_ERROR": "An unexpected error occurred",
}


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "INTERNAL_ERROR",
    details: Optional[Dict[str, Any]] = None,
    error_id: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create the terse `{"error": ...}` body used by every error response."""

    content: Dict[str, Any] = {
        "error": message,
        "code": error_code,
        "error_id": error_id or str(uuid.uuid4())[:8],
    }
    if details:
        content["details"] = details

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def public_message(exc: DocShareError) -> str:
    """Message safe to show the caller for an application error."""
    if exc.error_code in GENERIC_MESSAGES and not settings.is_development:
        return GENERIC_MESSAGES[exc.error_code]
    return exc.message


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions raised by FastAPI and Starlette."""
    error_id = str(uuid.uuid4())[:8]

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.detail,
        error_code="HTTP_ERROR",
        error_id=error_id,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    error_id = str(uuid.uuid4())[:8]

    logger.warning(
        "Validation exception occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    formatted_errors = [
        {
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Request validation failed",
        error_code="VALIDATION_ERROR",
        details={"validation_errors": formatted_errors},
        error_id=error_id,
    )


async def docshare_exception_handler(
    request: Request, exc: DocShareError
) -> JSONResponse:
    """Handle custom application exceptions."""
    error_id = str(uuid.uuid4())[:8]

    status_code = STATUS_CODE_MAP.get(
        exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Application exception occurred",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    return create_error_response(
        status_code=status_code,
        message=public_message(exc),
        error_code=exc.error_code,
        error_id=error_id,
        headers=headers,
    )


async def google_api_exception_handler(
    request: Request, exc: GoogleAPIError
) -> JSONResponse:
    """Handle Google Cloud API errors that escaped the storage backend."""
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        "Google API exception occurred",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        error_id=error_id,
        exc_info=True,
    )

    message = str(exc) if settings.is_development else "Cloud service error occurred"

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_code="CLOUD_SERVICE_ERROR",
        error_id=error_id,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
        exc_info=True,
    )

    if settings.is_development:
        details = {
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc().split("\n"),
        }
        message = str(exc)
    else:
        details = None
        message = GENERIC_MESSAGES["INTERNAL_ERROR"]

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_code="INTERNAL_ERROR",
        details=details,
        error_id=error_id,
    )


def setup_exception_handlers(app):
    """Setup all exception handlers for the FastAPI app."""

    app.add_exception_handler(DocShareError, docshare_exception_handler)

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_exception_handler(GoogleAPIError, google_api_exception_handler)

    app.add_exception_handler(Exception, general_exception_handler)
