"""
Unit tests for the Google Cloud Storage backend.

The storage client is replaced with a MagicMock, so no requests leave the
process.
"""

from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Forbidden, NotFound
from google.oauth2 import service_account


@pytest.fixture
def gcs_client():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.public_url = "https://storage.googleapis.com/test-bucket/team/a.pdf"
    blob.exists.return_value = True
    blob.generate_signed_url.return_value = "https://storage.googleapis.com/signed"
    return client


@pytest.fixture
def backend(gcs_client):
    from app.core.gcs_client import GCSStorageBackend

    return GCSStorageBackend("test-bucket", client=gcs_client)


def _blob(client):
    return client.bucket.return_value.blob.return_value


class TestGCSUpload:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload_stores_content_with_content_type(self, backend, gcs_client):
        result = await backend.upload(b"%PDF-1.4", "team/a.pdf")

        gcs_client.bucket.assert_called_with("test-bucket")
        _blob(gcs_client).upload_from_string.assert_called_once_with(
            b"%PDF-1.4", content_type="application/pdf"
        )
        assert result.path == "team/a.pdf"
        assert result.public_url == "https://storage.googleapis.com/test-bucket/team/a.pdf"
        assert result.signed_url is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_private_upload_carries_signed_url(self, backend, gcs_client):
        gcs_client._credentials = MagicMock(spec=service_account.Credentials)

        result = await backend.upload(
            b"data", "team/a.pdf", make_public=False, expires_in=600
        )

        assert result.signed_url == "https://storage.googleapis.com/signed"
        assert result.expires_at is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload_failure_raises_upload_failed(self, backend, gcs_client):
        from app.core.exceptions import UploadFailedError

        _blob(gcs_client).upload_from_string.side_effect = Forbidden("denied")

        with pytest.raises(UploadFailedError) as exc_info:
            await backend.upload(b"data", "team/a.pdf")
        assert exc_info.value.path == "team/a.pdf"


class TestGCSDelete:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_missing_object_does_not_raise(self, backend, gcs_client):
        _blob(gcs_client).delete.side_effect = NotFound("gone")

        await backend.delete("team/a.pdf")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_failure_raises_delete_failed(self, backend, gcs_client):
        from app.core.exceptions import DeleteFailedError

        _blob(gcs_client).delete.side_effect = Forbidden("denied")

        with pytest.raises(DeleteFailedError):
            await backend.delete("team/a.pdf")


class TestGCSSignedUrls:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_service_account_signs_locally(self, backend, gcs_client):
        gcs_client._credentials = MagicMock(spec=service_account.Credentials)

        url = await backend.create_signed_url("team/a.pdf", 900)

        assert url == "https://storage.googleapis.com/signed"
        kwargs = _blob(gcs_client).generate_signed_url.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["version"] == "v4"
        assert kwargs["expiration"].total_seconds() == 900
        assert "service_account_email" not in kwargs

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_compute_credentials_use_iam_signing(self, backend, gcs_client):
        credentials = MagicMock()
        credentials.service_account_email = "svc@proj.iam.gserviceaccount.com"
        credentials.token = "access-token"
        gcs_client._credentials = credentials

        await backend.create_signed_url("team/a.pdf")

        credentials.refresh.assert_called_once()
        kwargs = _blob(gcs_client).generate_signed_url.call_args.kwargs
        assert kwargs["service_account_email"] == "svc@proj.iam.gserviceaccount.com"
        assert kwargs["access_token"] == "access-token"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_credentials_without_email_cannot_sign(self, backend, gcs_client):
        from app.core.exceptions import SignFailedError

        gcs_client._credentials = MagicMock(spec=["token", "refresh"])

        with pytest.raises(SignFailedError):
            await backend.create_signed_url("team/a.pdf")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_object_cannot_be_signed(self, backend, gcs_client):
        from app.core.exceptions import SignFailedError

        _blob(gcs_client).exists.return_value = False

        with pytest.raises(SignFailedError):
            await backend.create_signed_url("team/missing.pdf")


class TestGCSFileInfo:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_object_returns_none(self, backend, gcs_client):
        gcs_client.bucket.return_value.get_blob.return_value = None

        assert await backend.get_file_info("team/missing.pdf") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_info_fields(self, backend, gcs_client):
        blob = MagicMock()
        blob.name = "team/a.pdf"
        blob.size = 42
        blob.content_type = "application/pdf"
        blob.time_created = None
        blob.updated = None
        blob.etag = "etag-1"
        gcs_client.bucket.return_value.get_blob.return_value = blob

        info = await backend.get_file_info("team/a.pdf")

        assert info == {
            "name": "team/a.pdf",
            "size": 42,
            "content_type": "application/pdf",
            "created": None,
            "updated": None,
            "etag": "etag-1",
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_health_check_reports_bucket_errors(self, backend, gcs_client):
        gcs_client.bucket.return_value.reload.side_effect = Forbidden("denied")

        assert await backend.health_check() is False
