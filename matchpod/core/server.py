"""
FILE: matchpod/core/server.py

HTTP listener built on uvicorn.

uvicorn normally owns SIGINT/SIGTERM; here signal capture is disabled so
the ShutdownCoordinator decides when (and in which order) things stop.
"""

import asyncio
import contextlib
import logging
from typing import Optional

import uvicorn

from matchpod.core.exceptions import ServiceConnectionError
from matchpod.core.shutdown import CloseOutcome

logger = logging.getLogger(__name__)

_STARTUP_POLL_SECONDS = 0.05


class ManagedServer(uvicorn.Server):
    """uvicorn.Server driven from an existing event loop."""

    def __init__(self, config: uvicorn.Config) -> None:
        super().__init__(config)
        self._serve_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Signal handling is the coordinator's job
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    async def start(self) -> None:
        """
        Start serving in a background task and wait until the socket is bound.

        Raises:
            ServiceConnectionError: if uvicorn stopped before it started
        """
        self._serve_task = asyncio.create_task(self.serve(), name="http-listener")

        while not self.started:
            if self._serve_task.done():
                raise ServiceConnectionError(
                    "HTTP listener failed to start",
                    details={"host": self.config.host, "port": self.config.port},
                )
            await asyncio.sleep(_STARTUP_POLL_SECONDS)

        logger.info(f"✓ Server listening on {self.config.host}:{self.config.port}")

    async def wait_closed(self) -> None:
        """Wait for the listener to stop, for whatever reason."""
        if self._serve_task is not None:
            await asyncio.wait({self._serve_task})

    async def close(self) -> CloseOutcome:
        """
        Stop accepting connections and wait for in-flight requests to drain.

        Returns:
            CloseOutcome.NOT_RUNNING if the listener never started or already
            stopped cleanly, CloseOutcome.CLOSED otherwise.

        Raises:
            Whatever uvicorn raised while serving or shutting down, including
            a crash that ended the listener before close() was called.
        """
        if not self.is_running:
            task = self._serve_task
            if task is not None and not task.cancelled() and task.exception() is not None:
                raise task.exception()
            return CloseOutcome.NOT_RUNNING

        self.should_exit = True
        await self._serve_task
        return CloseOutcome.CLOSED
