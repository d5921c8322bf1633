# tests/conftest.py

"""
Pytest Fixtures - shared settings, fake collaborators and app factory

FAKES:
- FakeListener / FakeResource: record "<name>:start" and "<name>:end" for
  each close() into a shared list so tests can assert that one close
  finished before the next began
- FakeRedisHandler / FakeMongoHandler: stand in for the real handlers when
  the FastAPI app is built, no network involved
"""

import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from matchpod.api import create_app
from matchpod.config.settings import Settings
from matchpod.core.shutdown import CloseOutcome, ShutdownCoordinator

TEST_MONGODB_URI = "mongodb://localhost:27017/matchpod_test"
TEST_JWT_SECRET = "a8f5f167f44f4964e6c998dee827110c-k3y"


def build_settings(**overrides) -> Settings:
    values = {
        "_env_file": None,
        "environment": "test",
        "MONGODB_URI": TEST_MONGODB_URI,
        "JWT_SECRET": TEST_JWT_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# SHUTDOWN FAKES
# =============================================================================

class FakeListener:
    """HTTP listener stand-in with a configurable close()."""

    def __init__(
        self,
        calls: List[str],
        outcome: CloseOutcome = CloseOutcome.CLOSED,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        hang: bool = False,
    ):
        self.calls = calls
        self.outcome = outcome
        self.error = error
        self.delay = delay
        self.hang = hang
        self.close_count = 0

    async def close(self) -> CloseOutcome:
        self.close_count += 1
        self.calls.append("listener:start")
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append("listener:end")
        if self.error is not None:
            raise self.error
        return self.outcome


class FakeResource:
    """Cache / storage stand-in."""

    def __init__(self, name: str, calls: List[str], error: Optional[Exception] = None, delay: float = 0.0):
        self.name = name
        self.calls = calls
        self.error = error
        self.delay = delay
        self.close_count = 0

    async def close(self) -> None:
        self.close_count += 1
        self.calls.append(f"{self.name}:start")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append(f"{self.name}:end")
        if self.error is not None:
            raise self.error


# =============================================================================
# HANDLER FAKES (FastAPI app)
# =============================================================================

class FakeRedisHandler:
    def __init__(
        self,
        enabled: bool = False,
        ready: bool = False,
        ping_result: bool = True,
        ping_error: Optional[Exception] = None,
        client=None,
    ):
        self.enabled = enabled
        self.is_ready = ready
        self.ping_result = ping_result
        self.ping_error = ping_error
        self.client = client
        self.closed = False

    async def ping(self, timeout: float = 0.25) -> bool:
        if self.ping_error is not None:
            raise self.ping_error
        return self.ping_result

    async def is_available(self) -> bool:
        if not self.enabled:
            return False
        return await self.ping()

    def status(self) -> dict:
        return {"connected": self.is_ready, "host": "127.0.0.1", "port": 6379, "tls": False}

    async def close(self) -> None:
        self.closed = True


class FakeMongoHandler:
    def __init__(self, connected: bool = True):
        self.is_connected = connected
        self.closed = False

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def calls():
    """Ordered record of close() calls."""
    return []


@pytest.fixture
def exits():
    """Exit codes passed to the coordinator's exit_process."""
    return []


@pytest.fixture
def settings():
    return build_settings()


@pytest.fixture
def make_app(settings, exits):
    """Build a FastAPI app around fake handlers."""

    def _make_app(app_settings=None, redis_handler=None, mongo_handler=None, coordinator=None):
        app_settings = app_settings or settings
        redis_handler = redis_handler or FakeRedisHandler(enabled=app_settings.enable_redis)
        mongo_handler = mongo_handler or FakeMongoHandler()
        coordinator = coordinator or ShutdownCoordinator(
            cache=redis_handler,
            storage=mongo_handler,
            exit_process=exits.append,
        )
        return create_app(app_settings, coordinator, redis_handler, mongo_handler)

    return _make_app


@pytest.fixture
def client(make_app):
    """TestClient for an app with Redis disabled and MongoDB connected."""
    with TestClient(make_app()) as test_client:
        yield test_client
