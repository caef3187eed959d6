"""
Document Service - orchestration facade over the specialized document services.

The facade composes:
- DocumentAccessService: access gate for reads
- DocumentCrudService: document record lifecycle
- DocumentDownloadService: download redirect resolution
- DocumentUploadService: file storage for uploads

The storage backend and presign client are passed in, so the same facade
serves any configured provider.
"""

from typing import Optional

from fastapi import UploadFile

from app.core.storage_client import StorageBackend
from app.models.schemas.file import UploadDescriptor
from app.services.file_resolver import FileResolver
from app.services.presign_client import PresignClient
from .document_access_service import DocumentAccessService
from .document_base_service import DocumentBaseService
from .document_crud_service import DocumentCrudService
from .document_download_service import DocumentDownloadService, DownloadTarget
from .document_upload_service import DocumentUploadService


class DocumentService(DocumentBaseService):
    """Main document service implementing facade pattern."""

    def __init__(self, storage: StorageBackend, presign_client: PresignClient):
        super().__init__()
        self.storage = storage
        self.resolver = FileResolver(storage, presign_client)

        self.access_service = DocumentAccessService()
        self.crud_service = DocumentCrudService()
        self.download_service = DocumentDownloadService(self.resolver, self.crud_service)
        self.upload_service = DocumentUploadService(storage)

    async def check_document_access(
        self,
        document_id: str,
        user_id: Optional[str] = None,
        link_id: Optional[str] = None,
    ) -> bool:
        return await self.access_service.check_document_access(
            document_id, user_id=user_id, link_id=link_id
        )

    async def get_download_target(
        self,
        document_id: str,
        signed: bool = True,
        expires_in: Optional[int] = None,
        session_token: Optional[str] = None,
    ) -> DownloadTarget:
        return await self.download_service.get_download_target(
            document_id,
            signed=signed,
            expires_in=expires_in,
            session_token=session_token,
        )

    async def upload_file(
        self, file: Optional[UploadFile], team_id: str
    ) -> UploadDescriptor:
        return await self.upload_service.upload_file(file, team_id)

    async def create_signed_url(self, key: str, expires_in: int) -> str:
        """Presign a GET URL for an object key in the configured bucket."""
        return await self.storage.create_signed_url(key, expires_in)
