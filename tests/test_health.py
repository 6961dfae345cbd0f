"""Tests for health and diagnostics endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    """Test basic health check."""
    response = await client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_liveness_check(client):
    """Test liveness endpoint."""
    response = await client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


@pytest.mark.asyncio
async def test_readiness_check(client):
    response = await client.get("/health/ready")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["storage"] is True


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "Leadline Messaging API"
    assert data["status"] == "running"


@pytest.mark.asyncio
async def test_config_status_masks_secrets(client):
    response = await client.get("/status/config")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ok"
    secret = data["settings"]["whatsapp_app_secret"]
    assert secret["present"] is True
    assert secret["preview"] != "test-app-secret"
    assert data["settings"]["openai_api_key"] == {"present": False, "preview": None}


@pytest.mark.asyncio
async def test_database_status(client):
    response = await client.get("/status/database")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "connected"
    assert data["backend"] == "InMemoryStorage"


@pytest.mark.asyncio
async def test_debug_errors_lists_recorded_failures(client, container):
    container.errors.record("webhook", RuntimeError("boom"), external_id="9876543210")

    response = await client.get("/debug/errors")
    assert response.status_code == 200

    data = response.json()
    assert data["count"] == 1
    assert data["errors"][0]["type"] == "RuntimeError"
    assert data["errors"][0]["message"] == "boom"
    assert data["pending_deliveries"] == 0
