"""
================================================================================
FILE: matchpod/api/main.py
================================================================================

PURPOSE:
    FastAPI application factory. Creates and configures the FastAPI app
    instance: exception handlers, CORS, hardening middleware, routes, and
    the handles (settings, coordinator, Redis, MongoDB) routes depend on.

WORKFLOW:
    1. Initialize FastAPI app instance
    2. Store collaborators on app.state
    3. Register exception handlers
    4. Register middleware (innermost first):
         rate limit → sanitize → security headers → CORS → request context
    5. Register routes
    6. Return configured app

KEY FACTS:
    - No globals: main.py builds the collaborators and passes them in
    - Connecting and closing Redis/MongoDB is NOT done here; startup is in
      matchpod/main.py and shutdown belongs to the ShutdownCoordinator
    - Tests build the app with fake handlers (see tests/conftest.py)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from matchpod.api import routes
from matchpod.api.errors import register_exception_handlers
from matchpod.api.middleware import (
    SanitizeInputMiddleware,
    add_security_headers,
    request_context,
)
from matchpod.api.rate_limit import api_rate_limit, build_rate_limiters
from matchpod.config.constants import API_DESCRIPTION, API_TITLE, API_VERSION
from matchpod.config.settings import Settings
from matchpod.core.mongo_handler import MongoHandler
from matchpod.core.redis_handler import RedisHandler
from matchpod.core.shutdown import ShutdownCoordinator
from matchpod.security.cors import apply_cors, get_cors_options

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    coordinator: ShutdownCoordinator,
    redis_handler: RedisHandler,
    mongo_handler: MongoHandler,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance ready to serve.
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.coordinator = coordinator
    app.state.redis_handler = redis_handler
    app.state.mongo_handler = mongo_handler
    app.state.rate_limiters = build_rate_limiters(settings)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================
    register_exception_handlers(app, settings)

    # =========================================================================
    # MIDDLEWARE (last added runs first)
    # =========================================================================
    app.middleware("http")(api_rate_limit)
    app.add_middleware(SanitizeInputMiddleware)
    app.middleware("http")(add_security_headers)
    apply_cors(app, get_cors_options(settings.environment, settings.cors_origins))
    app.middleware("http")(request_context)

    # =========================================================================
    # ROUTES
    # =========================================================================
    app.include_router(routes.router)

    logger.info(f"✓ {API_TITLE} app created (env={settings.environment})")
    return app
