"""Health, model configuration, error handlers and middleware."""

import time
from unittest.mock import AsyncMock, MagicMock

from api.config.models import DEFAULT_CHAT_MODEL, get_models, parse_model_from_cookie
from api.config.settings import RATE_LIMIT_BURST, rate_limit_storage
from api.utils import memory
from api.utils.rate_limiting import check_rate_limit_with_throttling
from tests.helpers import set_service_env


async def test_health_reports_services(client, services, monkeypatch):
    monkeypatch.setattr("api.routes.health.check_redis_connection", AsyncMock(return_value=True))

    response = await client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["gemini"] == {"available": True}
    assert body["services"]["redis"] == {"configured": True, "connected": True}
    assert body["services"]["database"] == {"configured": True}
    assert body["uptimeSeconds"] >= 0
    assert "no-store" in response.headers["cache-control"]


async def test_health_unhealthy_without_gemini(client, monkeypatch):
    set_service_env(monkeypatch, gemini=False, redis=False, supabase=False)

    response = await client.get("/api/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["services"]["redis"] == {"configured": False, "connected": False}
    assert body["services"]["supabase"] == {"configured": False}


async def test_memory_and_rate_limit_health(client):
    memory = await client.get("/api/health/memory")
    assert memory.status_code == 200
    assert memory.json()["memory_rss_mb"] > 0

    limits = await client.get("/api/health/rate-limits")
    assert limits.json()["rate_limit_burst"] == RATE_LIMIT_BURST


async def test_models_endpoint_is_cacheable(client):
    response = await client.get("/api/config/models")

    assert response.status_code == 200
    assert [model["id"] for model in response.json()["models"]] == [
        model["id"] for model in get_models()
    ]
    assert response.headers["cache-control"] == "public, max-age=300, s-maxage=300"


def test_model_cookie_parsing():
    assert parse_model_from_cookie(None) is DEFAULT_CHAT_MODEL
    assert parse_model_from_cookie("{not json") is DEFAULT_CHAT_MODEL
    assert parse_model_from_cookie('{"name": "missing id"}') is DEFAULT_CHAT_MODEL

    model = parse_model_from_cookie(
        '{"id": "gemini-3-pro-preview", "providerId": "google", '
        '"thinkingConfig": {"thinkingLevel": "high"}}'
    )
    assert model.id == "gemini-3-pro-preview"
    assert model.name == "gemini-3-pro-preview"
    assert model.provider == "google"
    assert model.thinkingConfig.thinkingLevel == "high"


async def test_unknown_route_uses_detail_body(client):
    response = await client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


async def test_validation_errors_are_422(client, services):
    response = await client.post("/api/imagine", json={"aspectRatio": "1:1"})
    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation error"
    assert body["errors"][0]["loc"] == ["body", "prompt"]


async def test_cors_preflight(client):
    response = await client.options(
        "/api/notes",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "PATCH",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "PATCH" in response.headers["access-control-allow-methods"]


def test_burst_limit_blocks_further_requests():
    client_ip = "203.0.113.7"

    rate_limit_storage[client_ip] = [time.time()] * RATE_LIMIT_BURST
    info = check_rate_limit_with_throttling(client_ip)

    assert info["allowed"] is False
    assert info["burst_count"] == RATE_LIMIT_BURST
    assert 0 < info["suggested_wait"] <= 5


async def test_throttled_request_gets_429(client, monkeypatch):
    monkeypatch.setattr(
        "api.middleware.rate_limiting.wait_for_rate_limit", AsyncMock(return_value=False)
    )

    response = await client.get("/api/config/models")

    assert response.status_code == 429
    assert response.json()["detail"].startswith("Rate limit exceeded")
    assert int(response.headers["retry-after"]) >= 1


async def test_health_is_exempt_from_throttling(client, services, monkeypatch):
    monkeypatch.setattr(
        "api.middleware.rate_limiting.wait_for_rate_limit", AsyncMock(return_value=False)
    )
    monkeypatch.setattr("api.routes.health.check_redis_connection", AsyncMock(return_value=False))

    response = await client.get("/api/health")

    assert response.status_code == 200


def test_memory_release_above_threshold(monkeypatch):
    release = MagicMock(return_value={"final_rss_mb": 0.5, "freed_mb": 10.0})
    monkeypatch.setattr(memory, "GC_MEMORY_THRESHOLD", 1)
    monkeypatch.setattr(memory, "force_release_memory", release)

    assert memory.check_memory_and_gc() == 0.5
    release.assert_called_once()


def test_force_release_memory_reports_result():
    result = memory.force_release_memory()
    assert "freed_mb" in result
    assert result["gc_collected"] >= 0
