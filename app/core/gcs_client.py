import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from google.auth.transport import requests as auth_requests
from google.cloud import storage
from google.cloud.storage import Bucket
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.oauth2 import service_account

from app.core.exceptions import (
    DeleteFailedError,
    SignFailedError,
    StorageError,
    UploadFailedError,
)
from app.core.storage_client import StorageBackend
from app.models.schemas.file import UploadResult


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend for document storage."""

    name = "gcs"

    def __init__(
        self,
        bucket_name: str,
        project_id: Optional[str] = None,
        credentials_file: Optional[str] = None,
        client: Optional[storage.Client] = None,
    ):
        super().__init__(bucket_name)
        if client is not None:
            self._client = client
        elif credentials_file:
            self._client = storage.Client.from_service_account_json(
                credentials_file, project=project_id
            )
        else:
            self._client = storage.Client(project=project_id)

        self.logger.info("GCS client created", bucket=bucket_name, project=project_id)

    @property
    def client(self) -> storage.Client:
        return self._client

    def _bucket(self, bucket: Optional[str] = None) -> Bucket:
        return self._client.bucket(bucket or self.bucket_name)

    def _upload_sync(self, content: bytes, path: str, bucket: Optional[str]) -> str:
        blob = self._bucket(bucket).blob(path)
        # Overwrites any existing object at this path
        blob.upload_from_string(content, content_type=self.get_content_type(path))
        return blob.public_url

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
            public_url = await asyncio.to_thread(self._upload_sync, content, path, bucket)
        except GoogleAPIError as e:
            self.logger.error(
                "Failed to upload file to GCS", path=path, bucket=bucket, error=str(e)
            )
            raise UploadFailedError(f"Upload failed: {e}", path=path) from e

        self.logger.info("Uploaded file to GCS", path=path, size=len(content))

        result = UploadResult(path=path, public_url=public_url)
        if not make_public and expires_in:
            result.signed_url = await self.create_signed_url(path, expires_in)
            result.expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        return result

    def _delete_sync(self, path: str, bucket: Optional[str]) -> None:
        self._bucket(bucket).blob(path).delete()

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, path, bucket)
        except NotFound:
            self.logger.warning("File not found for deletion", path=path)
            return
        except GoogleAPIError as e:
            self.logger.error("Failed to delete file from GCS", path=path, error=str(e))
            raise DeleteFailedError(f"Delete failed: {e}", path=path) from e

        self.logger.info("Deleted file from GCS", path=path)

    def _sign_sync(self, path: str, expires_in: int) -> str:
        """
        Generate a v4 signed GET URL.

        Service account credentials sign locally. Other credentials (ADC on
        GCP) go through the IAM signBlob API, which needs the service account
        email and a fresh access token.
        """
        blob = self._bucket().blob(path)
        if not blob.exists():
            raise SignFailedError(f"Object not found: {path}", path=path)

        expiration = timedelta(seconds=expires_in)
        credentials = self._client._credentials

        if isinstance(credentials, service_account.Credentials):
            return blob.generate_signed_url(
                expiration=expiration, method="GET", version="v4"
            )

        service_account_email = getattr(credentials, "service_account_email", None)
        if not service_account_email:
            raise SignFailedError(
                f"Cannot generate signed URL: credentials type "
                f"'{type(credentials).__name__}' does not support URL signing",
                path=path,
            )

        self.logger.debug(
            "Using IAM signBlob API for signed URL generation",
            credential_type=type(credentials).__name__,
        )
        credentials.refresh(auth_requests.Request())
        return blob.generate_signed_url(
            expiration=expiration,
            method="GET",
            version="v4",
            service_account_email=service_account_email,
            access_token=credentials.token,
        )

    async def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        try:
            signed_url = await asyncio.to_thread(self._sign_sync, path, expires_in)
        except SignFailedError:
            raise
        except GoogleAPIError as e:
            self.logger.error("Failed to generate signed URL", path=path, error=str(e))
            raise SignFailedError(f"Failed to create signed URL: {e}", path=path) from e

        self.logger.debug("Generated signed URL", path=path, expires_in=expires_in)
        return signed_url

    async def get_public_url(self, path: str, bucket: Optional[str] = None) -> str:
        return self._bucket(bucket).blob(path).public_url

    def _file_info_sync(self, path: str, bucket: Optional[str]) -> Optional[Dict[str, Any]]:
        blob = self._bucket(bucket).get_blob(path)
        if blob is None:
            return None
        return {
            "name": blob.name,
            "size": blob.size,
            "content_type": blob.content_type,
            "created": blob.time_created.isoformat() if blob.time_created else None,
            "updated": blob.updated.isoformat() if blob.updated else None,
            "etag": blob.etag,
        }

    async def get_file_info(
        self, path: str, bucket: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._file_info_sync, path, bucket)
        except GoogleAPIError as e:
            self.logger.error("Failed to get file info from GCS", path=path, error=str(e))
            raise StorageError(f"Failed to get file info: {e}", path=path) from e

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._bucket().reload)
            return True
        except Exception as e:
            self.logger.error("GCS health check failed", error=str(e))
            return False
