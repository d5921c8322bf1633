"""
================================================================================
FILE: matchpod/core/redis_handler.py
================================================================================

PURPOSE:
    Redis client lifecycle for rate limiting and health checks.

WORKFLOW:
    1. Settings decide host/port/password/TLS (port 6380 implies TLS)
    2. Client is created lazily on first use
    3. ping() with a short timeout drives health checks and the ready flag
    4. close() is called by the ShutdownCoordinator

IMPORTS:
    - redis.asyncio: Async Redis client
    - asyncio: wait_for timeouts
    - config: Redis configuration

KEY FACTS:
    - App works without Redis (ENABLE_REDIS=false); rate limiting fails open
    - ping() never raises; it reports False on timeout or error
    - close() always drops the client, then re-raises any error so the
      coordinator can log it as a warning
    - Passwords are masked before errors are logged

TESTING ENVIRONMENT:
    - Patch matchpod.core.redis_handler.redis.Redis with a MagicMock
    - AsyncMock for ping / aclose
"""

# ================================================================================
# IMPORTS
# ================================================================================

import asyncio
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from matchpod.config.constants import (
    REDIS_CONNECT_TIMEOUT_SECONDS,
    REDIS_DATABASE,
    REDIS_PING_TIMEOUT_SECONDS,
    REDIS_SOCKET_TIMEOUT_SECONDS,
)
from matchpod.config.settings import Settings
from matchpod.utils import redact_secrets

logger = logging.getLogger(__name__)

# ================================================================================
# REDIS HANDLER CLASS
# ================================================================================

class RedisHandler:
    """
    Async Redis client wrapper.

    Owns one redis.asyncio.Redis instance (with its connection pool).
    """

    def __init__(self, settings: Settings):
        """
        Initialize Redis handler (no connection is made here).

        Args:
            settings: Application settings (Redis host, port, password, TLS)
        """
        self.settings = settings
        self.config: Dict[str, Any] = settings.get_redis_config()
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @property
    def enabled(self) -> bool:
        return self.settings.enable_redis

    @property
    def client(self) -> redis.Redis:
        """Get or create the Redis client."""
        if self._client is None:
            logger.info(f"Creating Redis client for {self.config['host']}:{self.config['port']}")
            options: Dict[str, Any] = {
                "host": self.config["host"],
                "port": self.config["port"],
                "password": self.config["password"],
                "db": REDIS_DATABASE,
                "decode_responses": True,
                "socket_connect_timeout": REDIS_CONNECT_TIMEOUT_SECONDS,
                "socket_timeout": REDIS_SOCKET_TIMEOUT_SECONDS,
                "socket_keepalive": True,
            }
            if self.config["tls"]:
                # Managed Redis certificates are not verified
                options["ssl"] = True
                options["ssl_cert_reqs"] = None
            self._client = redis.Redis(**options)
        return self._client

    @property
    def is_ready(self) -> bool:
        """Connection state without a round trip."""
        return self._client is not None and self._connected

    async def ping(self, timeout: float = REDIS_PING_TIMEOUT_SECONDS) -> bool:
        """
        Ping Redis with a timeout.

        Returns:
            True if Redis answered in time, False on timeout or error
        """
        try:
            result = await asyncio.wait_for(self.client.ping(), timeout=timeout)
            self._connected = bool(result)
        except asyncio.TimeoutError:
            logger.warning(f"Redis PING timeout after {timeout}s")
            self._connected = False
        except Exception as e:
            logger.warning(f"Redis PING failed: {redact_secrets(str(e))}")
            self._connected = False
        return self._connected

    async def connect(self) -> bool:
        """
        Create the client and verify it answers.

        Returns:
            True when Redis is reachable; the app keeps running either way
        """
        available = await self.ping(timeout=REDIS_CONNECT_TIMEOUT_SECONDS)
        if available:
            logger.info(f"✓ Redis connected to {self.config['host']}:{self.config['port']}")
        else:
            logger.warning("Redis not available, rate limiting will fail open")
        return available

    async def is_available(self) -> bool:
        """Check if Redis is available and ready."""
        if not self.enabled:
            return False
        return await self.ping()

    def status(self) -> Dict[str, Any]:
        """Connection status for the health endpoint (no password)."""
        return {
            "connected": self.is_ready,
            "host": self.config["host"],
            "port": self.config["port"],
            "tls": self.config["tls"],
        }

    async def close(self) -> None:
        """
        Close the Redis connection.

        Raises:
            Any error from the client; the handler is reset regardless.
        """
        if self._client is None:
            return

        client = self._client
        self._client = None
        self._connected = False
        try:
            await client.aclose()
            logger.info("Redis connection closed gracefully")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {redact_secrets(str(e))}")
            raise
