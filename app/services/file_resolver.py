"""
Resolution of a document's stored-file reference into a fetchable URL.

The document's storage tag picks the strategy:

- inline-blob: the reference already is a CDN URL. Downloads get the CDN's
  download-disposition variant, everything else gets it unchanged.
- object-store-key: the reference is a bucket key and is always traded for a
  presigned URL, unless UPLOAD_TRANSPORT routes keys to a direct storage
  provider, in which case the storage backend signs or publishes it.
"""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from app.core.config import settings
from app.core.exceptions import UnknownStorageTypeError
from app.core.logging import get_service_logger
from app.core.storage_client import StorageBackend
from app.models.document import DocumentStorageType
from app.services.presign_client import PresignClient

logger = get_service_logger("file_resolver")

# UPLOAD_TRANSPORT values that resolve object keys through the storage backend
DIRECT_STORAGE_TRANSPORTS = {"gcs", "supabase"}


def get_download_url(blob_url: str) -> str:
    """CDN URL variant that makes the browser download instead of display."""
    parts = urlsplit(blob_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "download"]
    query.append(("download", "1"))
    return urlunsplit(parts._replace(query=urlencode(query)))


class FileResolver:
    """Turns (storage tag, stored reference) pairs into URLs."""

    def __init__(
        self,
        storage: StorageBackend,
        presign_client: PresignClient,
        upload_transport: Optional[str] = None,
    ):
        self.storage = storage
        self.presign_client = presign_client
        self.upload_transport = (upload_transport or settings.UPLOAD_TRANSPORT).lower()

    async def resolve(
        self,
        storage_type,
        stored_ref: str,
        *,
        is_download: bool = False,
        signed: bool = False,
        expires_in: int = 3600,
        session_token: Optional[str] = None,
    ) -> str:
        """
        Resolve a stored-file reference into a URL.

        Args:
            storage_type: DocumentStorageType tag (or its string value)
            stored_ref: CDN URL or object key, depending on the tag
            is_download: request the download-disposition variant
            signed: prefer a time-limited URL when the storage backend resolves
            expires_in: lifetime of signed URLs in seconds
            session_token: forwarded to the presign proxy

        Raises:
            UnknownStorageTypeError: the tag matches no strategy
        """
        try:
            tag = DocumentStorageType(storage_type)
        except ValueError:
            logger.error("Unknown storage type", storage_type=str(storage_type))
            raise UnknownStorageTypeError(storage_type)

        if (
            tag is DocumentStorageType.OBJECT_STORE_KEY
            and self.upload_transport in DIRECT_STORAGE_TRANSPORTS
        ):
            return await self._resolve_from_storage(stored_ref, signed, expires_in)

        if tag is DocumentStorageType.INLINE_BLOB:
            if is_download:
                return get_download_url(stored_ref)
            return stored_ref

        if tag is DocumentStorageType.OBJECT_STORE_KEY:
            return await self.presign_client.get_presigned_url(
                stored_ref, session_token=session_token
            )

        raise UnknownStorageTypeError(storage_type)

    async def _resolve_from_storage(
        self, path: str, signed: bool, expires_in: int
    ) -> str:
        logger.debug(
            "Resolving object key through storage backend",
            backend=self.storage.name,
            signed=signed,
        )
        if signed:
            return await self.storage.create_signed_url(path, expires_in)
        return await self.storage.get_public_url(path)
