"""
Pytest configuration and fixtures for the test suite.

This module provides shared fixtures for unit and integration tests.
"""

import io
import json
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport

# Set test environment before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_BACKEND", "gcs")
os.environ.setdefault("DOCUMENTS_BUCKET", "test-bucket")
os.environ.setdefault("UPLOAD_TRANSPORT", "s3")
os.environ.setdefault("BASE_URL", "http://presign.test")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-api-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.core.exceptions import SignFailedError  # noqa: E402
from app.core.storage_client import StorageBackend  # noqa: E402
from app.models.schemas.file import UploadResult  # noqa: E402

fake = Faker()

SIGNED_HOST = "https://storage.test"


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (API)")
    config.addinivalue_line("markers", "db: Database tests")
    config.addinivalue_line("markers", "api: API endpoint tests")


# =============================================================================
# Storage Fake
# =============================================================================

class InMemoryStorageBackend(StorageBackend):
    """Storage backend keeping objects in a dict.

    Signed URLs embed the path and a token so `fetch` can serve them back,
    which lets tests check upload then download without a real bucket.
    """

    name = "memory"

    def __init__(self, bucket_name: str = "test-bucket"):
        super().__init__(bucket_name)
        self.objects: Dict[str, bytes] = {}
        self.upload_calls: List[str] = []
        self.signed: Dict[str, str] = {}

    async def upload(self, content, path, *, make_public=True, bucket=None, expires_in=None):
        self.upload_calls.append(path)
        self.objects[path] = content
        result = UploadResult(path=path, public_url=await self.get_public_url(path, bucket))
        if not make_public and expires_in:
            result.signed_url = await self.create_signed_url(path, expires_in)
        return result

    async def delete(self, path, bucket=None):
        self.objects.pop(path, None)

    async def create_signed_url(self, path, expires_in=3600):
        if path not in self.objects:
            raise SignFailedError(f"Object not found: {path}", path=path)
        token = uuid.uuid4().hex
        self.signed[token] = path
        return f"{SIGNED_HOST}/signed/{path}?token={token}&expires={expires_in}"

    async def get_public_url(self, path, bucket=None):
        return f"{SIGNED_HOST}/{bucket or self.bucket_name}/{path}"

    async def get_file_info(self, path, bucket=None):
        if path not in self.objects:
            return None
        return {"name": path, "size": len(self.objects[path])}

    async def health_check(self):
        return True

    def fetch(self, url: str) -> bytes:
        """Serve a signed URL produced by this backend."""
        token = httpx.URL(url).params["token"]
        return self.objects[self.signed[token]]


@pytest.fixture
def memory_storage() -> InMemoryStorageBackend:
    """Fresh in-memory storage backend."""
    return InMemoryStorageBackend()


# =============================================================================
# Presign Exchange
# =============================================================================

@pytest.fixture
def presign_calls() -> List[Dict[str, Any]]:
    """Requests received by the mocked presign endpoint."""
    return []


@pytest.fixture
def presign_transport(presign_calls) -> httpx.MockTransport:
    """Mock presign endpoint answering every key with a signed URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        presign_calls.append(
            {"url": str(request.url), "headers": dict(request.headers), "body": body}
        )
        return httpx.Response(
            200, json={"url": f"https://signed.test/{body['key']}?X-Signature=abc"}
        )

    return httpx.MockTransport(handler)


@pytest.fixture
def presign_client(presign_transport):
    """Presign client talking to the mocked endpoint."""
    from app.services.presign_client import PresignClient

    return PresignClient(
        base_url="http://presign.test",
        internal_api_key="test-internal-api-key",
        transport=presign_transport,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def database():
    """In-memory SQLite database with all tables, scoped to one test."""
    from app.core.db_client import db
    from app.core.simple_auth import session_manager

    await db.create_tables()
    session_manager.clear()
    yield db
    session_manager.clear()
    await db.close()


@pytest.fixture
def create_session(database) -> Callable:
    """Factory writing a provider session row and returning its token."""
    from app.models.db import SessionModel

    async def _create(
        user_id: Optional[str] = None,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        token = uuid.uuid4().hex
        async with database.session() as session:
            session.add(
                SessionModel(
                    session_id=token,
                    user_id=user_id or str(uuid.uuid4()),
                    email=fake.email(),
                    name=fake.name(),
                    expires_at=datetime.now(timezone.utc) + expires_in,
                )
            )
        return token

    return _create


@pytest.fixture
def create_team(database) -> Callable:
    """Factory creating a team owned by `owner_id`."""
    from app.services.team_service import team_service

    async def _create(owner_id: str, name: Optional[str] = None):
        return await team_service.create_team(name or fake.company()[:100], owner_id)

    return _create


@pytest.fixture
def create_document(database) -> Callable:
    """Factory creating a document record for a team."""
    from app.models.document import DocumentStorageType
    from app.services.document.document_crud_service import DocumentCrudService

    async def _create(
        team_id: str,
        file: str,
        storage_type: DocumentStorageType = DocumentStorageType.OBJECT_STORE_KEY,
        name: Optional[str] = None,
        document_type: str = "pdf",
    ):
        return await DocumentCrudService().create_document(
            team_id=team_id,
            name=name or fake.file_name(extension="pdf"),
            file=file,
            storage_type=storage_type,
            document_type=document_type,
        )

    return _create


# =============================================================================
# Test Data
# =============================================================================

@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def sample_pdf_content() -> bytes:
    """A minimal two-page PDF."""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R 4 0 R] /Count 2 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>",
    ]
    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(b"%d 0 obj\n" % number + body + b"\nendobj\n")
    xref_offset = out.tell()
    out.write(b"xref\n0 %d\n" % (len(objects) + 1))
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(b"%010d 00000 n \n" % offset)
    out.write(
        b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n"
        % (len(objects) + 1, xref_offset)
    )
    return out.getvalue()


@pytest.fixture
def mock_upload_file():
    """Create a mock UploadFile object."""
    file = Mock()
    file.filename = "test_document.pdf"
    file.content_type = "application/pdf"
    file.size = 1024 * 100  # 100KB
    file.read = AsyncMock(return_value=b"test file content")
    file.close = AsyncMock()
    return file


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(memory_storage, presign_client):
    """FastAPI application with storage and presign dependencies replaced."""
    # Import here to ensure test environment is set
    from app.main import app as fastapi_app
    from app.core.ratelimit import NoopRateLimiter, get_rate_limiter
    from app.core.storage_client import get_storage_backend
    from app.services.presign_client import get_presign_client

    fastapi_app.dependency_overrides[get_storage_backend] = lambda: memory_storage
    fastapi_app.dependency_overrides[get_presign_client] = lambda: presign_client
    fastapi_app.dependency_overrides[get_rate_limiter] = lambda: NoopRateLimiter(10, 10)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

