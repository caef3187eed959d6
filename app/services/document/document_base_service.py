"""
Document Base Service - Common utilities and shared functionality.

This service provides the foundation for all document services with:
- Shared logging
- Database session access
- Conversion of table rows into Document models
"""

from app.core.db_client import db
from app.core.logging import get_service_logger
from app.models.db import DocumentModel
from app.models.document import Document


class DocumentNotFoundError(Exception):
    """Document not found error."""

    pass


class DocumentBaseService:
    """Base service with common functionality shared across all document services."""

    def __init__(self):
        self.logger = get_service_logger("document")

    @property
    def db(self):
        """Get database manager for session access."""
        return db

    @staticmethod
    def _to_document(model: DocumentModel) -> Document:
        return Document.model_validate(model)
