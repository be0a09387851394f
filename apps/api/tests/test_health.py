from unittest.mock import patch

import pytest


@pytest.mark.asyncio
async def test_health_reports_fallback_modes(api_client):
    client, _ = api_client
    with (
        patch("routers.health._database_status", return_value="up"),
        patch("routers.health.settings.PROGRESS_BACKEND", "memory"),
        patch("routers.health.settings.APIFY_TOKEN", ""),
        patch("routers.health.settings.OPENAI_API_KEY", ""),
    ):
        payload = (await client.get("/health")).json()

    assert payload["status"] == "healthy"
    assert payload["database"] == "up"
    assert "redis" not in payload
    assert payload["scrape_provider"] == "fallback_only"
    assert payload["openai"] == "fallback_only"


@pytest.mark.asyncio
async def test_health_degrades_when_redis_progress_is_down(api_client):
    client, _ = api_client
    with (
        patch("routers.health._database_status", return_value="up"),
        patch("routers.health._redis_status", return_value="down: connection refused"),
        patch("routers.health.settings.PROGRESS_BACKEND", "redis"),
    ):
        payload = (await client.get("/health")).json()

    assert payload["status"] == "degraded"
    assert payload["redis"].startswith("down")


@pytest.mark.asyncio
async def test_ready_requires_a_post_source(api_client):
    client, _ = api_client
    with (
        patch("routers.health.settings.FALLBACK_DATA_ENABLED", False),
        patch("routers.health.settings.APIFY_TOKEN", ""),
    ):
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["missing"] == ["APIFY_TOKEN"]
