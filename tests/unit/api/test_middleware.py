"""Tests for API middleware: correlation ID, actor context, response headers."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_correlation_id_generated(async_client: AsyncClient):
    """When X-Correlation-ID is not sent, response has a generated correlation ID."""
    r = await async_client.get("/health")
    assert r.status_code == 200
    assert "X-Correlation-ID" in r.headers
    assert len(r.headers["X-Correlation-ID"]) > 0


@pytest.mark.asyncio
async def test_correlation_id_preserved_when_passed(async_client: AsyncClient):
    """When X-Correlation-ID is sent, the same value is returned in response."""
    correlation_id = "my-correlation-123"
    r = await async_client.get("/health", headers={"X-Correlation-ID": correlation_id})
    assert r.status_code == 200
    assert r.headers.get("X-Correlation-ID") == correlation_id
    assert r.json().get("correlation_id") == correlation_id


@pytest.mark.asyncio
async def test_audited_response_keeps_correlation_header(fleet_client: AsyncClient, audit_logger):
    """The interceptor sits outside the correlation middleware and forwards its headers."""
    r = await fleet_client.get("/api/vehicles/v-1", headers={"X-Correlation-ID": "corr-7"})
    await audit_logger.drain()
    assert r.headers.get("X-Correlation-ID") == "corr-7"


@pytest.mark.asyncio
async def test_actor_from_gateway_headers(fleet_client: AsyncClient, audit_logger, audit_repository):
    await fleet_client.get("/api/vehicles/v-1", headers={"X-User-ID": "u-5", "X-User-Role": "admin"})
    await audit_logger.drain()

    [record] = audit_repository.records
    assert record.actor_id == "u-5"
    assert record.actor_role == "admin"
    assert record.actor_name is None

