"""
================================================================================
FILE: matchpod/api/dependencies.py
================================================================================

PURPOSE:
FastAPI dependency injection functions. Provides reusable dependencies
that are injected into route handlers via Depends():
- Configuration access
- Shutdown coordinator (health check)
- Redis / MongoDB handlers

KEY FACTS:
- Everything lives on app.state, set once by create_app()
- No module-level singletons; tests build their own app
- Override in tests with: app.dependency_overrides[get_settings] = ...
"""

import logging

from fastapi import Request

from matchpod.config.settings import Settings
from matchpod.core.mongo_handler import MongoHandler
from matchpod.core.redis_handler import RedisHandler
from matchpod.core.shutdown import ShutdownCoordinator

logger = logging.getLogger(__name__)


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_coordinator(request: Request) -> ShutdownCoordinator:
    return request.app.state.coordinator


async def get_redis_handler(request: Request) -> RedisHandler:
    return request.app.state.redis_handler


async def get_mongo_handler(request: Request) -> MongoHandler:
    return request.app.state.mongo_handler
