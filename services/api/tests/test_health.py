"""Tests for health endpoint and the error envelope."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_missing_token_uses_error_envelope(client: AsyncClient):
    response = await client.patch("/v1/orders/1/status", json={"status": "IN_FULFILLMENT"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["error"]["code"] == "AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client: AsyncClient):
    response = await client.patch(
        "/v1/orders/1/status",
        json={"status": "IN_FULFILLMENT"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_validation_errors_use_error_envelope(client: AsyncClient):
    """Schema violations are rejected before any handler runs."""
    response = await client.get("/v1/prices/history", params={"county": "Kiambu"})
    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_FAILED"
    assert "query.crop" in body["error"]["detail"]["fields"]
