"""
Health and system route tests
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch


def test_root_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["port"] == 3000
    assert data["uptime"] >= 0
    assert "timestamp" in data


def test_api_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == "1.0.0"
    assert data["openai_client"] is True
    assert data["moderation"]["service"] == "cloudflare_workers_ai"
    assert data["moderation"]["daily_limit"] == "10,000 neurons"


def test_moderation_health_not_configured(client):
    response = client.get("/api/moderation/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "not_configured"
    assert data["cost_per_request"] == "Free tier"


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_unknown_endpoint(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Endpoint not found"}


def test_body_too_large(client):
    with patch("aimarker.main.settings") as mock_settings:
        mock_settings.max_body_bytes = 10
        response = client.post("/api/aimarker/submit", content=b"x" * 100)
    assert response.status_code == 413


def test_database_health(client):
    conn = MagicMock()
    conn.fetchval = AsyncMock(return_value=1)

    @asynccontextmanager
    async def connection():
        yield conn

    with patch("aimarker.routes.system.get_database_connection", connection):
        response = client.get("/api/health/database")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}


def test_database_unavailable(client):
    @asynccontextmanager
    async def connection():
        raise ConnectionRefusedError("connection refused")
        yield

    with patch("aimarker.routes.system.get_database_connection", connection):
        response = client.get("/api/health/database")
    assert response.status_code == 503
    assert response.json()["success"] is False
