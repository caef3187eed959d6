"""
Shared utilities and dependencies for document and file API endpoints.

This module provides common functionality used across the router modules,
following the DRY (Don't Repeat Yourself) principle.
"""

from fastapi import Depends, HTTPException, status

from app.core.logging import get_api_logger
from app.core.storage_client import StorageBackend, get_storage_backend
from app.services.document import DocumentService
from app.services.presign_client import PresignClient, get_presign_client

# Shared logger instance
logger = get_api_logger()


def get_document_service(
    storage: StorageBackend = Depends(get_storage_backend),
    presign_client: PresignClient = Depends(get_presign_client),
) -> DocumentService:
    """Document service bound to the configured storage backend."""
    return DocumentService(storage, presign_client)


def handle_access_denied(operation: str, **context) -> HTTPException:
    """Refuse a request that failed the access gate."""
    logger.warning(f"Access denied for {operation}", **context)
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


def handle_generic_error(
    e: Exception, operation: str, message: str, **context
) -> HTTPException:
    """Handle generic exceptions consistently across endpoints."""
    logger.error(
        f"Unexpected error during {operation}",
        error=str(e),
        error_type=type(e).__name__,
        exc_info=True,
        **context,
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def log_operation_start(operation: str, **context) -> None:
    """Log the start of an operation consistently."""
    logger.info(f"{operation} started", **context)


def log_operation_success(operation: str, **context) -> None:
    """Log successful operation completion consistently."""
    logger.info(f"{operation} completed successfully", **context)
