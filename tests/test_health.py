"""
Health Endpoint Tests
tests/test_health.py

GET /api/health and GET /api/health/redis, including the 503 answer while
the shutdown coordinator is running.
"""

import asyncio

from fastapi.testclient import TestClient

from conftest import FakeListener, FakeMongoHandler, FakeRedisHandler, build_settings
from matchpod.core.shutdown import ShutdownCoordinator


class TestApiInfo:

    def test_api_root(self, client):
        response = client.get("/api")

        assert response.status_code == 200
        assert response.json()["endpoints"]["health"] == "/api/health"


class TestHealth:

    def test_healthy_with_redis_disabled(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"api": "healthy", "database": "healthy", "redis": "disabled"}
        assert body["redis"]["enabled"] is False

    def test_database_down_is_unhealthy(self, make_app):
        app = make_app(mongo_handler=FakeMongoHandler(connected=False))

        with TestClient(app) as client:
            response = client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["services"]["database"] == "unhealthy"

    def test_redis_down_is_not_critical(self, make_app):
        settings = build_settings(ENABLE_REDIS=True)
        redis_handler = FakeRedisHandler(enabled=True, ready=False, ping_result=False)

        with TestClient(make_app(app_settings=settings, redis_handler=redis_handler)) as client:
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["services"]["redis"] == "unhealthy"

    def test_redis_available(self, make_app):
        settings = build_settings(ENABLE_REDIS=True)
        redis_handler = FakeRedisHandler(enabled=True, ready=True)

        with TestClient(make_app(app_settings=settings, redis_handler=redis_handler)) as client:
            response = client.get("/api/health")

        body = response.json()
        assert body["services"]["redis"] == "healthy"
        assert body["redis"]["available"] is True

    def test_redis_check_error(self, make_app):
        settings = build_settings(ENABLE_REDIS=True)
        redis_handler = FakeRedisHandler(enabled=True, ping_error=RuntimeError("boom"))

        with TestClient(make_app(app_settings=settings, redis_handler=redis_handler)) as client:
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["services"]["redis"] == "error"

    def test_shutting_down_returns_503(self, make_app, calls, exits):
        redis_handler = FakeRedisHandler()
        mongo_handler = FakeMongoHandler()
        coordinator = ShutdownCoordinator(redis_handler, mongo_handler, exit_process=exits.append)
        asyncio.run(coordinator.shutdown("SIGTERM", FakeListener(calls)))

        app = make_app(redis_handler=redis_handler, mongo_handler=mongo_handler, coordinator=coordinator)
        with TestClient(app) as client:
            response = client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "shutting_down"
        assert exits == [0]
        assert redis_handler.closed is True
        assert mongo_handler.closed is True


class TestRedisHealth:

    def test_not_ready(self, client):
        response = client.get("/api/health/redis")

        assert response.status_code == 503
        assert response.json()["reason"] == "not_ready"

    def test_healthy(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True)

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api/health/redis")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["response_time"] < 250

    def test_ping_failed(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, ping_result=False)

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api/health/redis")

        assert response.status_code == 503
        assert response.json()["reason"] == "ping_failed"

    def test_ping_error(self, make_app):
        redis_handler = FakeRedisHandler(enabled=True, ready=True, ping_error=ConnectionError("reset"))

        with TestClient(make_app(redis_handler=redis_handler)) as client:
            response = client.get("/api/health/redis")

        assert response.status_code == 503
        assert response.json()["reason"] == "error"
