import asyncio
import posixpath
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from storage3.exceptions import StorageApiError
from supabase import Client, create_client

from app.core.exceptions import (
    DeleteFailedError,
    SignFailedError,
    StorageError,
    UploadFailedError,
)
from app.core.storage_client import StorageBackend
from app.models.schemas.file import UploadResult


class SupabaseStorageBackend(StorageBackend):
    """Supabase Storage backend, authenticated with the service role key."""

    name = "supabase"

    def __init__(
        self,
        bucket_name: str,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        super().__init__(bucket_name)
        self._client = client or create_client(url, service_role_key)
        self.logger.info("Supabase storage client created", bucket=bucket_name)

    @property
    def client(self) -> Client:
        return self._client

    def _bucket(self, bucket: Optional[str] = None):
        return self._client.storage.from_(bucket or self.bucket_name)

    def _upload_sync(self, content: bytes, path: str, bucket: Optional[str]) -> str:
        response = self._bucket(bucket).upload(
            path,
            content,
            file_options={
                "content-type": self.get_content_type(path),
                "upsert": "true",
            },
        )
        return getattr(response, "path", None) or path

    async def upload(
        self,
        content: bytes,
        path: str,
        *,
        make_public: bool = True,
        bucket: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> UploadResult:
        try:
            stored_path = await asyncio.to_thread(self._upload_sync, content, path, bucket)
        except StorageApiError as e:
            self.logger.error(
                "Failed to upload file to Supabase", path=path, bucket=bucket, error=str(e)
            )
            raise UploadFailedError(f"Upload failed: {e}", path=path) from e

        self.logger.info("Uploaded file to Supabase", path=stored_path, size=len(content))

        result = UploadResult(
            path=stored_path,
            public_url=await self.get_public_url(stored_path, bucket),
        )
        if not make_public and expires_in:
            result.signed_url = await self.create_signed_url(stored_path, expires_in)
            result.expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        return result

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        try:
            # Removing an absent key returns an empty list rather than an error
            removed = await asyncio.to_thread(self._bucket(bucket).remove, [path])
        except StorageApiError as e:
            self.logger.error("Failed to delete file from Supabase", path=path, error=str(e))
            raise DeleteFailedError(f"Delete failed: {e}", path=path) from e

        if not removed:
            self.logger.warning("File not found for deletion", path=path)
        else:
            self.logger.info("Deleted file from Supabase", path=path)

    async def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        try:
            signed = await asyncio.to_thread(
                self._bucket().create_signed_url, path, expires_in
            )
        except StorageApiError as e:
            self.logger.error("Failed to create signed URL", path=path, error=str(e))
            raise SignFailedError(f"Failed to create signed URL: {e}", path=path) from e

        url = signed.get("signedUrl") or signed.get("signedURL")
        if not url:
            raise SignFailedError("Failed to create signed URL: empty response", path=path)
        return url

    async def get_public_url(self, path: str, bucket: Optional[str] = None) -> str:
        # Computed locally from the project URL, no request is made
        return self._bucket(bucket).get_public_url(path).rstrip("?")

    async def get_file_info(
        self, path: str, bucket: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        folder, name = posixpath.split(path)
        try:
            entries = await asyncio.to_thread(
                self._bucket(bucket).list, folder, {"search": name}
            )
        except StorageApiError as e:
            self.logger.error("Failed to get file info from Supabase", path=path, error=str(e))
            raise StorageError(f"Failed to get file info: {e}", path=path) from e

        for entry in entries or []:
            if entry.get("name") == name:
                metadata = entry.get("metadata") or {}
                return {
                    "name": path,
                    "size": metadata.get("size"),
                    "content_type": metadata.get("mimetype"),
                    "created": entry.get("created_at"),
                    "updated": entry.get("updated_at"),
                    "etag": metadata.get("eTag"),
                }
        return None

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._client.storage.get_bucket, self.bucket_name)
            return True
        except Exception as e:
            self.logger.error("Supabase health check failed", error=str(e))
            return False
