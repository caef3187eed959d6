"""
Document Upload Service - stores an uploaded file and describes it.

The service enforces the size limit before any storage write, stores the
file under a generated path, and extracts the page count of PDFs. The
spooled temporary file behind the upload is always released.
"""

import asyncio
from typing import Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import BadRequestError, PayloadTooLargeError
from app.core.storage_client import StorageBackend
from app.models.document import PAGINATED_CONTENT_TYPES
from app.models.schemas.file import UploadDescriptor
from app.utils.pdf import count_pdf_pages
from .document_base_service import DocumentBaseService

DEFAULT_PAGE_COUNT = 1


class DocumentUploadService(DocumentBaseService):
    """Service for file uploads into the configured storage backend."""

    def __init__(self, storage: StorageBackend, max_upload_size: Optional[int] = None):
        super().__init__()
        self.storage = storage
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE

    async def upload_file(self, file: Optional[UploadFile], team_id: str) -> UploadDescriptor:
        """
        Store an uploaded file for a team.

        Args:
            file: The multipart `file` part
            team_id: Team the file is stored under

        Returns:
            Descriptor of the stored file

        Raises:
            BadRequestError: no file part was sent
            PayloadTooLargeError: the file exceeds the configured maximum
        """
        if file is None:
            raise BadRequestError("No file provided")

        try:
            if file.size is not None and file.size > self.max_upload_size:
                raise PayloadTooLargeError(self.max_upload_size, file.size)

            # Read one byte past the limit so oversize bodies without a size are caught
            content = await file.read(self.max_upload_size + 1)
            if len(content) > self.max_upload_size:
                raise PayloadTooLargeError(self.max_upload_size, len(content))

            file_name = file.filename or "unknown"
            path = self.storage.generate_file_path(file_name, team_id)
            # Declared part type first, extension mapping when the client sent none
            content_type = file.content_type or self.storage.get_content_type(file_name)

            result = await self.storage.upload(content, path, make_public=True)

            num_pages = DEFAULT_PAGE_COUNT
            if content_type in PAGINATED_CONTENT_TYPES:
                num_pages = await self._count_pages(content, result.path)

            self.logger.info(
                "File uploaded",
                team_id=team_id,
                path=result.path,
                size=len(content),
                content_type=content_type,
                num_pages=num_pages,
            )

            return UploadDescriptor(
                path=result.path,
                public_url=result.public_url,
                file_name=file_name,
                content_type=content_type,
                file_size=len(content),
                num_pages=num_pages,
            )
        finally:
            await file.close()

    async def _count_pages(self, content: bytes, path: str) -> int:
        try:
            return await asyncio.to_thread(count_pdf_pages, content)
        except Exception as e:
            self.logger.warning(
                "Could not determine page count, defaulting to 1",
                path=path,
                error=str(e),
            )
            return DEFAULT_PAGE_COUNT
