"""
Rate Limiting Tests
tests/test_rate_limit.py

Sliding-window limiter over a mocked Redis pipeline, fail-open behaviour
and the /api middleware / per-route dependency.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from conftest import FakeRedisHandler, build_settings
from matchpod.api.rate_limit import (
    RateLimitConfig,
    RateLimiter,
    build_rate_limiters,
    get_client_ip,
    rate_limit,
)
from matchpod.core.exceptions import RateLimitError


def mock_redis_client(*counts) -> MagicMock:
    """Client whose pipeline reports the given ZCARD results, one per execute()."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(side_effect=[[0, 1, count, True] for count in counts])
    client = MagicMock()
    client.pipeline.return_value = pipe
    return client


class TestRateLimiter:

    @pytest.mark.asyncio
    async def test_under_limit_reports_remaining(self):
        limiter = RateLimiter("rl_test", RateLimitConfig(points=5, duration=60, block_duration=300))
        client = mock_redis_client(3)

        info = await limiter.consume(client, "10.0.0.1")

        assert info.remaining == 2
        assert info.total == 5
        assert info.headers()["X-RateLimit-Limit"] == "5"
        client.pipeline.assert_called_once_with(transaction=True)

    @pytest.mark.asyncio
    async def test_key_expires_after_window_plus_block(self):
        limiter = RateLimiter("rl_test", RateLimitConfig(points=5, duration=60, block_duration=300))
        client = mock_redis_client(1)

        await limiter.consume(client, "10.0.0.1")

        client.pipeline.return_value.expire.assert_called_once_with("rl_test:10.0.0.1", 360)

    @pytest.mark.asyncio
    async def test_over_limit_raises(self):
        limiter = RateLimiter("rl_login", RateLimitConfig(points=5, duration=300, block_duration=600))

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.consume(mock_redis_client(6), "user@example.com")

        assert exc_info.value.status_code == 429
        assert exc_info.value.details == {"reset_after": 600, "limit": 5, "remaining": 0}

    def test_api_limiter_follows_settings(self):
        limiters = build_rate_limiters(build_settings(API_RATE_LIMIT=42, API_RATE_WINDOW_SECONDS=30))

        assert limiters["api"].points == 42
        assert limiters["api"].duration == 30
        assert limiters["login"].prefix == "rl_login"
        assert limiters["login"].points == 5


class TestClientIp:

    def test_forwarded_for_first_entry(self, make_app):
        app = make_app()

        @app.get("/ip")
        async def ip(request_ip: str = Depends(get_client_ip)):
            return {"ip": request_ip}

        with TestClient(app) as client:
            response = client.get("/ip", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert response.json() == {"ip": "203.0.113.7"}


class TestApiRateLimitMiddleware:

    def test_fail_open_when_redis_not_ready(self, client):
        response = client.get("/api")

        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers

    def test_headers_added_under_limit(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=mock_redis_client(1))

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    def test_over_limit_returns_429(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=mock_redis_client(101))

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api")

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert body["error"]["retry_after"] == 300
        assert response.headers["Retry-After"] == "300"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_redis_error_fails_open(self, make_app):
        client_mock = MagicMock()
        client_mock.pipeline.return_value.execute = AsyncMock(side_effect=ConnectionError("down"))
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=client_mock)

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api")

        assert response.status_code == 200

    def test_non_api_paths_skip_limiter(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=mock_redis_client(101))

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/docs")

        assert response.status_code == 200


class TestRouteRateLimit:

    def test_route_limit_exceeded_handled_globally(self, make_app):
        # First execute() serves the /api middleware, second the route limiter
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=mock_redis_client(1, 6))
        app = make_app(redis_handler=redis_handler)

        @app.post("/api/auth/login", dependencies=[Depends(rate_limit("login"))])
        async def login():
            return {"success": True}

        with TestClient(app) as client:
            response = client.post("/api/auth/login")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert response.headers["Retry-After"] == "600"

    def test_route_limit_headers_under_limit(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, client=mock_redis_client(1, 2))
        app = make_app(redis_handler=redis_handler)

        @app.post("/api/auth/otp", dependencies=[Depends(rate_limit("otp"))])
        async def otp():
            return {"success": True}

        with TestClient(app) as client:
            response = client.post("/api/auth/otp")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "5"
