"""
Integration tests for health check endpoints.

Tests the /health and /live endpoints.
"""

from unittest.mock import patch, AsyncMock

import pytest


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_endpoint(self, async_client, database):
        """Test /health endpoint returns ok with a reachable database."""
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "message": "All systems operational (database connected)",
        }

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_endpoint_database_unavailable(self, async_client):
        """Test /health returns 500 when the database test fails."""
        with patch("app.api.health.db") as mock_db:
            mock_db.test_connection = AsyncMock(return_value=False)

            response = await async_client.get("/health")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Database unavailable"}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_endpoint_database_error(self, async_client):
        """Test /health returns 500 when the database test raises."""
        with patch("app.api.health.db") as mock_db:
            mock_db.test_connection = AsyncMock(side_effect=OSError("connection refused"))

            response = await async_client.get("/health")

        assert response.status_code == 500
        assert response.json()["status"] == "error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_live_endpoint(self, async_client):
        """Test /live endpoint returns 200 OK."""
        response = await async_client.get("/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True
