"""
================================================================================
FILE: matchpod/main.py
================================================================================

PURPOSE:
    Process entry point (console script `matchpod-api`).

STARTUP SEQUENCE:
    1. Configure logging
    2. Validate environment (exit 1 on failure)
    3. Register process-level safety handlers (before any async I/O)
    4. Connect MongoDB (exit 1 on failure)
    5. Connect Redis if ENABLE_REDIS (app keeps running without it)
    6. Build the shutdown coordinator and the FastAPI app
    7. Start the HTTP listener
    8. Register SIGTERM / SIGINT → coordinator.shutdown()
    9. Wait; the coordinator ends the process

KEY FACTS:
    - The coordinator is created once here and passed to both the signal
      wiring and the app (health check), never looked up globally
    - If the listener stops on its own (not via a signal) the same ordered
      shutdown runs
"""

import asyncio
import logging

import uvicorn

from matchpod.api import create_app
from matchpod.config.settings import Settings, load_settings
from matchpod.core.exceptions import ConfigurationError, ServiceConnectionError
from matchpod.core.mongo_handler import MongoHandler
from matchpod.core.redis_handler import RedisHandler
from matchpod.core.server import ManagedServer
from matchpod.core.shutdown import (
    ShutdownCoordinator,
    register_process_handlers,
    register_signal_handlers,
    terminate,
)
from matchpod.utils import measure_time, setup_logging

logger = logging.getLogger(__name__)


async def serve(settings: Settings) -> None:
    loop = asyncio.get_running_loop()
    register_process_handlers(loop)

    mongo_handler = MongoHandler(settings.mongodb_uri)
    try:
        with measure_time("MongoDB connect"):
            await mongo_handler.connect()
    except ServiceConnectionError:
        logger.error("MongoDB connection error, exiting")
        terminate(1)
        return

    redis_handler = RedisHandler(settings)
    if settings.enable_redis:
        logger.info("Initializing Redis client...")
        await redis_handler.connect()
    else:
        logger.info("Redis disabled via configuration")

    coordinator = ShutdownCoordinator(
        cache=redis_handler,
        storage=mongo_handler,
        timeout=settings.shutdown_timeout,
    )
    app = create_app(settings, coordinator, redis_handler, mongo_handler)

    server = ManagedServer(
        uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            access_log=False,
            lifespan="off",
        )
    )
    try:
        await server.start()
    except ServiceConnectionError as e:
        logger.error(f"{e}, exiting")
        terminate(1)
        return

    # Registered after the listener is up
    register_signal_handlers(loop, coordinator, server)

    await server.wait_closed()
    if not coordinator.is_shutting_down:
        logger.warning("HTTP listener stopped without a signal")
        await coordinator.shutdown("listener-exit", server)
    await coordinator.wait_finished()


def main() -> None:
    setup_logging()

    try:
        settings = load_settings()
    except ConfigurationError:
        logger.error("Please check your .env file or deployment environment variables.")
        terminate(1)
        return

    setup_logging(settings.log_level, settings.log_dir)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
