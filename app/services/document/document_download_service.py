"""
Document Download Service - resolves a readable document into a redirect target.

The caller must already have passed the access gate. The service loads the
document, resolves its stored-file reference and returns the URL together
with the headers a download redirect carries.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote

from app.core.config import settings
from app.core.exceptions import NotAccessibleError
from app.services.file_resolver import FileResolver
from .document_base_service import DocumentBaseService, DocumentNotFoundError
from .document_crud_service import DocumentCrudService

DOWNLOAD_CACHE_CONTROL = "public, max-age=3600"


def content_disposition(filename: str) -> str:
    """
    Attachment header value for a display name.

    ASCII names are sent as-is. Anything else gets an ASCII fallback plus an
    RFC 5987 `filename*` parameter, since header values must encode as latin-1.
    """
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    fallback = re.sub(r"[^\x20-\x7e]", "_", filename)
    return (
        f'attachment; filename="{fallback}"; '
        f"filename*=UTF-8''{quote(filename, safe='')}"
    )


@dataclass
class DownloadTarget:
    """Where a download redirect points and how the response is labelled."""

    url: str
    filename: str
    content_type: str

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": content_disposition(self.filename),
            "Cache-Control": DOWNLOAD_CACHE_CONTROL,
        }


class DocumentDownloadService(DocumentBaseService):
    """Service for document download operations and URL generation."""

    def __init__(self, resolver: FileResolver, crud_service: Optional[DocumentCrudService] = None):
        super().__init__()
        self.resolver = resolver
        self.crud_service = crud_service or DocumentCrudService()

    async def get_download_target(
        self,
        document_id: str,
        signed: bool = True,
        expires_in: Optional[int] = None,
        session_token: Optional[str] = None,
    ) -> DownloadTarget:
        """
        Resolve a document into a download redirect target.

        Raises:
            DocumentNotFoundError: the document disappeared after the access check
            NotAccessibleError: the reference did not resolve to an http(s) URL
        """
        document = await self.crud_service.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        url = await self.resolver.resolve(
            document.storage_type,
            document.file,
            is_download=True,
            signed=signed,
            expires_in=expires_in or settings.SIGNED_URL_EXPIRATION_SECONDS,
            session_token=session_token,
        )

        if not url.startswith(("http://", "https://")):
            self.logger.warning(
                "Resolved reference is not a URL",
                document_id=document_id,
                storage_type=document.storage_type.value,
            )
            raise NotAccessibleError()

        self.logger.info(
            "Download target resolved",
            document_id=document_id,
            storage_type=document.storage_type.value,
        )
        return DownloadTarget(
            url=url, filename=document.name, content_type=document.content_type
        )
