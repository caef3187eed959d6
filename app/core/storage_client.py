"""
Object storage abstraction.

Every storage provider is wrapped in a `StorageBackend` exposing the same
async interface. The backend in use is chosen once at startup by
`create_storage_backend` and injected wherever files are stored or signed.
"""

import os
import secrets
import string
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, Optional

from app.core import config
from app.core.exceptions import BackendUnavailableError
from app.core.logging import get_service_logger
from app.models.document import MIME_TYPES
from app.models.schemas.file import UploadResult

logger = get_service_logger("storage")

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_RANDOM_LENGTH = 13
_DEFAULT_EXTENSION = "bin"


class StorageBackend(ABC):
    """Uniform interface over an external object store."""

    name: str = "base"

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        self.logger = logger.bind(backend=self.name)

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def upload(
        self,
        content: bytes,
        path: str,
        *,
        make_public: bool = True,
        bucket: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> UploadResult:
        """Store `content` at `path`, overwriting any existing object.

        When `make_public` is false and `expires_in` is given, the result also
        carries a signed URL valid for `expires_in` seconds.
        """

    @abstractmethod
    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        """Remove the object at `path`. Missing objects are not an error."""

    @abstractmethod
    async def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        """Time-limited GET URL for a private object."""

    @abstractmethod
    async def get_public_url(self, path: str, bucket: Optional[str] = None) -> str:
        """Direct URL for an object in a public bucket."""

    @abstractmethod
    async def get_file_info(
        self, path: str, bucket: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Metadata for the object at `path`, or None when it does not exist."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check the bucket is reachable."""

    @staticmethod
    def generate_file_path(original_name: str, owner_id: str) -> str:
        """
        Build a collision-resistant object key for an upload.

        Format: `{owner_id}/{epoch_millis}-{random}.{extension}` where random is
        13 lowercase base-36 characters.
        """
        timestamp = int(time.time() * 1000)
        random_id = "".join(
            secrets.choice(_RANDOM_ALPHABET) for _ in range(_RANDOM_LENGTH)
        )
        extension = os.path.splitext(os.path.basename(original_name or ""))[1]
        extension = extension.lstrip(".").lower() or _DEFAULT_EXTENSION
        return f"{owner_id}/{timestamp}-{random_id}.{extension}"

    @staticmethod
    def get_content_type(path: str) -> str:
        """Map a path's extension to a MIME type."""
        extension = os.path.splitext(path)[1].lstrip(".").lower()
        return MIME_TYPES.get(extension, "application/octet-stream")


class UnavailableStorageBackend(StorageBackend):
    """Stand-in used when the configured provider has no credentials.

    Every operation raises `BackendUnavailableError` so requests fail closed
    instead of the process failing at startup.
    """

    name = "unavailable"

    def __init__(self, bucket_name: str, provider: str, reason: str):
        super().__init__(bucket_name)
        self.provider = provider
        self.reason = reason

    @property
    def is_available(self) -> bool:
        return False

    def _fail(self):
        raise BackendUnavailableError(
            f"{self.provider} storage is not initialized: {self.reason}",
            backend=self.provider,
        )

    async def upload(self, content, path, *, make_public=True, bucket=None, expires_in=None):
        self._fail()

    async def delete(self, path, bucket=None):
        self._fail()

    async def create_signed_url(self, path, expires_in=3600):
        self._fail()

    async def get_public_url(self, path, bucket=None):
        self._fail()

    async def get_file_info(self, path, bucket=None):
        self._fail()

    async def health_check(self) -> bool:
        return False


def create_storage_backend(settings) -> StorageBackend:
    """
    Build the storage backend named by `settings.STORAGE_BACKEND`.

    Missing credentials or a failed client construction log a warning and
    yield an `UnavailableStorageBackend`.
    """
    provider = settings.STORAGE_BACKEND

    if provider == "supabase":
        bucket_name = settings.DOCUMENTS_BUCKET
        if not (settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY):
            return _unavailable(
                bucket_name, provider, "SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set"
            )
        try:
            from app.core.supabase_client import SupabaseStorageBackend

            return SupabaseStorageBackend(
                bucket_name,
                url=settings.SUPABASE_URL,
                service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
            )
        except Exception as e:
            return _unavailable(bucket_name, provider, str(e))

    if provider == "gcs":
        bucket_name = settings.gcs_bucket_name
        if not settings.GCP_PROJECT_ID:
            return _unavailable(bucket_name, provider, "GCP_PROJECT_ID not set")
        try:
            from app.core.gcs_client import GCSStorageBackend

            return GCSStorageBackend(
                bucket_name,
                project_id=settings.GCP_PROJECT_ID,
                credentials_file=settings.GOOGLE_APPLICATION_CREDENTIALS,
            )
        except Exception as e:
            return _unavailable(bucket_name, provider, str(e))

    return _unavailable(settings.DOCUMENTS_BUCKET, provider, "unknown storage backend")


def _unavailable(bucket_name: str, provider: str, reason: str) -> UnavailableStorageBackend:
    logger.warning(
        "Storage backend not configured, operating in disabled mode",
        provider=provider,
        reason=reason,
    )
    return UnavailableStorageBackend(bucket_name, provider, reason)


@lru_cache()
def get_storage_backend() -> StorageBackend:
    """Get the process-wide storage backend, built from settings on first use."""
    return create_storage_backend(config.settings)
