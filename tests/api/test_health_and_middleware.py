"""Health endpoints, request ids, error format and rate limiting."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from focusstreak.middleware import rate_limit


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_ready_degrades_without_redis(client):
    response = await client.get("/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"] == "ok"


@pytest.mark.asyncio
async def test_version(client):
    body = (await client.get("/version")).json()
    assert body["day_timezone"] == "UTC"
    assert "version" in body


@pytest.mark.asyncio
async def test_request_id_generated_and_echoed(client):
    generated = await client.get("/health")
    assert generated.headers["X-Request-Id"]

    echoed = await client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert echoed.headers["X-Request-Id"] == "abc-123"


@pytest.mark.asyncio
async def test_not_found_is_json(client):
    response = await client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


@pytest.mark.asyncio
async def test_rate_limit_rejects_over_budget(client, monkeypatch):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[101, True])
    fake_redis = MagicMock()
    fake_redis.pipeline.return_value = pipe
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake_redis)

    response = await client.get("/api/v1/ranks", headers={"X-User-Id": "5"})

    assert response.status_code == 429
    assert response.headers["X-RateLimit-Remaining"] == "0"
    pipe.incr.assert_called_once()
    assert pipe.incr.call_args.args[0].startswith("ratelimit:user:5:")


@pytest.mark.asyncio
async def test_rate_limit_headers_when_under_budget(client, monkeypatch):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[3, True])
    fake_redis = MagicMock()
    fake_redis.pipeline.return_value = pipe
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake_redis)

    response = await client.get("/api/v1/ranks")

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Remaining"] == "97"
