"""
Unit tests for the configuration module.

Tests Settings parsing and derived properties. Each test builds its own
Settings instance so the process-wide one is left alone.
"""

import os
from unittest.mock import patch

import pytest


def _settings(**env):
    from app.core.config import Settings

    with patch.dict(os.environ, env, clear=False):
        return Settings(_env_file=None)


class TestEnvironmentDetection:
    """Tests for environment detection properties."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["development", "dev", "local"])
    def test_is_development(self, value):
        settings = _settings(ENVIRONMENT=value)

        assert settings.is_development is True
        assert settings.is_production is False

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["production", "PROD"])
    def test_is_production(self, value):
        settings = _settings(ENVIRONMENT=value)

        assert settings.is_production is True
        assert settings.is_development is False

    @pytest.mark.unit
    def test_test_environment_is_neither(self):
        settings = _settings(ENVIRONMENT="test")

        assert settings.is_development is False
        assert settings.is_production is False


class TestStorageSettings:
    """Tests for storage provider settings."""

    @pytest.mark.unit
    def test_provider_names_are_normalized(self):
        settings = _settings(STORAGE_BACKEND=" Supabase ", UPLOAD_TRANSPORT="GCS")

        assert settings.STORAGE_BACKEND == "supabase"
        assert settings.UPLOAD_TRANSPORT == "gcs"

    @pytest.mark.unit
    def test_gcs_bucket_falls_back_to_documents_bucket(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("GCS_BUCKET_NAME", None)
            settings = _settings(DOCUMENTS_BUCKET="shared-docs")

        assert settings.gcs_bucket_name == "shared-docs"

    @pytest.mark.unit
    def test_explicit_gcs_bucket_wins(self):
        settings = _settings(DOCUMENTS_BUCKET="shared-docs", GCS_BUCKET_NAME="gcs-docs")

        assert settings.gcs_bucket_name == "gcs-docs"

    @pytest.mark.unit
    def test_default_upload_limit_is_100_mib(self):
        from app.core.config import Settings

        assert Settings.model_fields["MAX_UPLOAD_SIZE"].default == 100 * 1024 * 1024


class TestRateLimitSettings:
    """Tests for the rate limiter switch."""

    @pytest.mark.unit
    def test_disabled_without_token(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("RATE_LIMIT_REDIS_TOKEN", None)
            settings = _settings(RATE_LIMIT_REDIS_URL="redis://cache:6379")

        assert settings.rate_limit_enabled is False

    @pytest.mark.unit
    def test_enabled_with_url_and_token(self):
        settings = _settings(
            RATE_LIMIT_REDIS_URL="redis://cache:6379", RATE_LIMIT_REDIS_TOKEN="secret"
        )

        assert settings.rate_limit_enabled is True


class TestListSettings:
    """Tests for comma-separated list parsing."""

    @pytest.mark.unit
    def test_comma_separated_origins(self):
        settings = _settings(CORS_ORIGINS="https://a.example, https://b.example")

        assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]

    @pytest.mark.unit
    def test_json_array_hosts(self):
        settings = _settings(ALLOWED_HOSTS='["api.example.com"]')

        assert settings.ALLOWED_HOSTS == ["api.example.com"]
