"""
Integration tests for the application-level endpoints.
"""

from dental_booking import __version__


class TestRootEndpoints:
    """Test root and health endpoints."""

    def test_root(self, client):
        """Test API information on the root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["version"] == __version__
        assert data["status"] == "running"

    def test_health(self, client):
        """Test the health check."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_unknown_route(self, client):
        """Test that unknown routes return 404."""
        assert client.get("/api/unknown").status_code == 404
