"""
Unit tests for the storage backend abstraction.

Tests path generation, content-type mapping, the disabled backend and
backend selection from settings.
"""

import re
from types import SimpleNamespace
from unittest.mock import patch

import pytest


def _settings(**overrides):
    values = {
        "STORAGE_BACKEND": "gcs",
        "DOCUMENTS_BUCKET": "documents",
        "GCS_BUCKET_NAME": None,
        "GCP_PROJECT_ID": None,
        "GOOGLE_APPLICATION_CREDENTIALS": None,
        "SUPABASE_URL": None,
        "SUPABASE_SERVICE_ROLE_KEY": None,
    }
    values.update(overrides)
    values["gcs_bucket_name"] = values["GCS_BUCKET_NAME"] or values["DOCUMENTS_BUCKET"]
    return SimpleNamespace(**values)


class TestGenerateFilePath:
    """Tests for StorageBackend.generate_file_path."""

    @pytest.mark.unit
    def test_path_format(self):
        """Paths are owner/millis-random.ext."""
        from app.core.storage_client import StorageBackend

        path = StorageBackend.generate_file_path("Report.PDF", "team_1")

        assert re.fullmatch(r"team_1/\d{13}-[a-z0-9]{13}\.pdf", path)

    @pytest.mark.unit
    def test_missing_extension_uses_bin(self):
        """Names without an extension get .bin."""
        from app.core.storage_client import StorageBackend

        path = StorageBackend.generate_file_path("README", "team_1")

        assert path.endswith(".bin")

    @pytest.mark.unit
    def test_directory_components_are_ignored(self):
        """Only the base name contributes the extension."""
        from app.core.storage_client import StorageBackend

        path = StorageBackend.generate_file_path("../archive.v2/notes", "team_1")

        assert path.startswith("team_1/")
        assert path.endswith(".bin")
        assert ".." not in path

    @pytest.mark.unit
    def test_paths_are_unique(self):
        """Repeated calls for the same name yield distinct paths."""
        from app.core.storage_client import StorageBackend

        paths = {StorageBackend.generate_file_path("a.pdf", "team_1") for _ in range(50)}

        assert len(paths) == 50


class TestGetContentType:
    """Tests for extension to MIME type mapping."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a/b.pdf", "application/pdf"),
            ("a/b.DOCX", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
            ("a/b.png", "image/png"),
            ("a/b.unknown", "application/octet-stream"),
            ("a/b", "application/octet-stream"),
        ],
    )
    def test_content_type(self, path, expected):
        from app.core.storage_client import StorageBackend

        assert StorageBackend.get_content_type(path) == expected


class TestUnavailableStorageBackend:
    """Tests for the fail-closed backend."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_operations_raise_backend_unavailable(self):
        """Every storage operation raises BackendUnavailableError."""
        from app.core.exceptions import BackendUnavailableError
        from app.core.storage_client import UnavailableStorageBackend

        backend = UnavailableStorageBackend("documents", "supabase", "no credentials")

        assert backend.is_available is False
        with pytest.raises(BackendUnavailableError) as exc_info:
            await backend.upload(b"data", "team/a.pdf")
        assert exc_info.value.details == {"backend": "supabase"}

        with pytest.raises(BackendUnavailableError):
            await backend.delete("team/a.pdf")
        with pytest.raises(BackendUnavailableError):
            await backend.create_signed_url("team/a.pdf")
        with pytest.raises(BackendUnavailableError):
            await backend.get_public_url("team/a.pdf")
        with pytest.raises(BackendUnavailableError):
            await backend.get_file_info("team/a.pdf")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_health_check_is_false(self):
        from app.core.storage_client import UnavailableStorageBackend

        backend = UnavailableStorageBackend("documents", "gcs", "no project")

        assert await backend.health_check() is False


class TestCreateStorageBackend:
    """Tests for backend selection from settings."""

    @pytest.mark.unit
    def test_gcs_without_project_is_unavailable(self):
        from app.core.storage_client import UnavailableStorageBackend, create_storage_backend

        backend = create_storage_backend(_settings(STORAGE_BACKEND="gcs"))

        assert isinstance(backend, UnavailableStorageBackend)
        assert backend.provider == "gcs"
        assert "GCP_PROJECT_ID" in backend.reason

    @pytest.mark.unit
    def test_supabase_without_credentials_is_unavailable(self):
        from app.core.storage_client import UnavailableStorageBackend, create_storage_backend

        backend = create_storage_backend(
            _settings(STORAGE_BACKEND="supabase", SUPABASE_URL="https://x.supabase.co")
        )

        assert isinstance(backend, UnavailableStorageBackend)
        assert backend.provider == "supabase"

    @pytest.mark.unit
    def test_unknown_provider_is_unavailable(self):
        from app.core.storage_client import UnavailableStorageBackend, create_storage_backend

        backend = create_storage_backend(_settings(STORAGE_BACKEND="ftp"))

        assert isinstance(backend, UnavailableStorageBackend)
        assert backend.reason == "unknown storage backend"

    @pytest.mark.unit
    def test_gcs_client_failure_is_unavailable(self):
        """A client that cannot be constructed degrades instead of raising."""
        from app.core.storage_client import UnavailableStorageBackend, create_storage_backend

        with patch(
            "app.core.gcs_client.storage.Client", side_effect=RuntimeError("no ADC")
        ):
            backend = create_storage_backend(
                _settings(STORAGE_BACKEND="gcs", GCP_PROJECT_ID="proj")
            )

        assert isinstance(backend, UnavailableStorageBackend)
        assert "no ADC" in backend.reason

    @pytest.mark.unit
    def test_gcs_selected_with_project(self):
        from app.core.gcs_client import GCSStorageBackend
        from app.core.storage_client import create_storage_backend

        with patch("app.core.gcs_client.storage.Client") as client_cls:
            backend = create_storage_backend(
                _settings(
                    STORAGE_BACKEND="gcs",
                    GCP_PROJECT_ID="proj",
                    GCS_BUCKET_NAME="docs-bucket",
                )
            )

        assert isinstance(backend, GCSStorageBackend)
        assert backend.bucket_name == "docs-bucket"
        client_cls.assert_called_once_with(project="proj")

    @pytest.mark.unit
    def test_supabase_selected_with_credentials(self):
        from app.core.storage_client import create_storage_backend
        from app.core.supabase_client import SupabaseStorageBackend

        with patch("app.core.supabase_client.create_client") as create_client:
            backend = create_storage_backend(
                _settings(
                    STORAGE_BACKEND="supabase",
                    SUPABASE_URL="https://x.supabase.co",
                    SUPABASE_SERVICE_ROLE_KEY="service-key",
                )
            )

        assert isinstance(backend, SupabaseStorageBackend)
        assert backend.bucket_name == "documents"
        create_client.assert_called_once_with("https://x.supabase.co", "service-key")
