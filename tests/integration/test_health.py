"""Integration tests for the health check endpoint."""

from fastapi import status
from fastapi.testclient import TestClient
from httpx import AsyncClient


class TestHealthCheckEndpoint:
    """Test health check endpoint.

    The health check endpoint provides service health status,
    version information, and database connectivity status.
    """

    def test_reports_healthy_database(self, client: TestClient) -> None:
        """Test health check against the real in-memory database.

        Arrange: Client with a running application
        Act: GET /api/health
        Assert: 200 with every field present and the database healthy
        """
        # Act
        response = client.get("/api/health")

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "status": "healthy",
            "version": "0.1.0",
            "environment": "testing",
            "database": "healthy",
        }

    def test_reports_unhealthy_database_without_failing(self, client: TestClient, mocker) -> None:
        """Test a failing database is reported, not turned into an error.

        Arrange: Mock database health check to return False
        Act: GET /api/health
        Assert: Still 200, database marked unhealthy
        """
        # Arrange
        mocker.patch(
            "src.infrastructure.persistence.database.Database.health_check",
            mocker.AsyncMock(return_value=False),
        )

        # Act
        response = client.get("/api/health")

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "unhealthy"

    def test_includes_request_id_header(self, client: TestClient) -> None:
        """Test every response carries an X-Request-ID."""
        response = client.get("/api/health")

        assert response.headers["X-Request-ID"]

    async def test_with_async_client(self, async_client: AsyncClient) -> None:
        """Test the endpoint through the async client.

        Arrange: Async client
        Act: GET /api/health
        Assert: 200 with healthy status
        """
        # Act
        response = await async_client.get("/api/health")

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["database"] == "healthy"
