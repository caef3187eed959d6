"""
Document services package.

Each service has a single responsibility:
- document_base_service: Shared logging and database access
- document_access_service: Access gate (team membership or share link)
- document_crud_service: Document record lifecycle
- document_download_service: Download redirect resolution
- document_upload_service: File uploads into object storage
- document_service: Orchestration facade (main interface)
"""

from .document_base_service import DocumentNotFoundError
from .document_download_service import DownloadTarget
from .document_service import DocumentService

__all__ = [
    "DocumentNotFoundError",
    "DocumentService",
    "DownloadTarget",
]
