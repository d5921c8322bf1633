"""
FILE: matchpod/core/mongo_handler.py

MongoDB client lifecycle.

Connection options favour failing fast over hanging (see
MONGODB_CONNECTION_OPTIONS). The ShutdownCoordinator closes this last.
"""

import logging
from typing import Any, Dict, Optional

from pymongo import AsyncMongoClient

from matchpod.config.constants import MONGODB_CONNECTION_OPTIONS
from matchpod.core.exceptions import ServiceConnectionError
from matchpod.utils import redact_secrets

logger = logging.getLogger(__name__)


class MongoHandler:
    """Owns the process-wide AsyncMongoClient."""

    def __init__(self, uri: str, options: Optional[Dict[str, Any]] = None):
        self.uri = uri
        self.options = dict(MONGODB_CONNECTION_OPTIONS if options is None else options)
        self.client: Optional[AsyncMongoClient] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self.client is not None and self._connected

    async def connect(self) -> None:
        """
        Create the client and verify the deployment answers a ping.

        Raises:
            ServiceConnectionError: if MongoDB is unreachable
        """
        self.client = AsyncMongoClient(self.uri, **self.options)
        try:
            await self.client.admin.command("ping")
        except Exception as e:
            message = redact_secrets(str(e))
            logger.error(f"MongoDB connection error: {message}")
            await self.client.close()
            self.client = None
            raise ServiceConnectionError(f"MongoDB connection failed: {message}") from e

        self._connected = True
        logger.info("✓ Connected to MongoDB")

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {redact_secrets(str(e))}")
            return False

    async def close(self) -> None:
        """Close the client; a no-op when never connected."""
        if self.client is None:
            return

        client = self.client
        self.client = None
        self._connected = False
        await client.close()
        logger.info("MongoDB connection closed")
