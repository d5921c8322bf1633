"""
================================================================================
FILE: matchpod/core/shutdown.py
================================================================================

PURPOSE:
    Graceful shutdown coordinator plus the process-level safety net.

    On SIGTERM (hosting platform) or SIGINT (local Ctrl+C):
    1. Stop accepting HTTP connections and wait for in-flight requests
    2. Close Redis
    3. Close MongoDB
    4. Exit 0, or exit 1 if the listener failed to close

    A watchdog forces exit 1 if the sequence takes longer than the
    configured timeout (10s by default; the platform sends SIGKILL soon
    after that).

WORKFLOW:
    main.py
      ├── register_process_handlers(loop)        (once, before any I/O)
      ├── coordinator = ShutdownCoordinator(redis, mongo, timeout)
      ├── app.state.coordinator = coordinator    (health check reads it)
      └── register_signal_handlers(loop, coordinator, server)

STATES:
    Running ──(first signal)──> ShuttingDown (terminal, process exits)

KEY FACTS:
    - The shutting-down flag is owned by the coordinator instance, not a
      module global
    - The flag is set before the first await, so two signals landing in
      the same loop iteration cannot both start the sequence
    - "Listener was never started" is a CloseOutcome, not an exception
    - Redis / MongoDB close failures are warnings; the next resource is
      still closed
    - Unhandled async failures and uncaught exceptions exit 1 immediately,
      without the ordered cleanup: process state is not trusted anymore

TESTING ENVIRONMENT:
    - Inject exit_process to record exit codes instead of terminating
    - Fake listener / cache / storage objects with async close()
"""

# ================================================================================
# IMPORTS
# ================================================================================

import asyncio
import logging
import os
import signal
import sys
import threading
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Set

from matchpod.config.constants import (
    DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    EXIT_CODE_CLEAN,
    EXIT_CODE_FAILURE,
)

logger = logging.getLogger(__name__)

ExitProcess = Callable[[int], None]

# ================================================================================
# COLLABORATOR CONTRACTS
# ================================================================================

class CloseOutcome(Enum):
    """Result of asking the HTTP listener to stop."""

    CLOSED = "closed"
    NOT_RUNNING = "not_running"


class StoppableServer(Protocol):
    """HTTP listener: stop accepting connections, return once drained."""

    async def close(self) -> CloseOutcome:
        ...


class Closeable(Protocol):
    """Cache / storage client with an async disconnect."""

    async def close(self) -> None:
        ...


def terminate(code: int) -> None:
    """Flush log handlers and end the process immediately."""
    logging.shutdown()
    os._exit(code)

# ================================================================================
# SHUTDOWN COORDINATOR
# ================================================================================

class ShutdownCoordinator:
    """
    Runs the ordered release of listener, cache and storage exactly once.

    Constructed once at startup and passed explicitly to the signal wiring
    and to the FastAPI app.
    """

    def __init__(
        self,
        cache: Closeable,
        storage: Closeable,
        timeout: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
        exit_process: ExitProcess = terminate,
    ):
        """
        Args:
            cache: Redis handler (closed second)
            storage: MongoDB handler (closed last)
            timeout: seconds before the watchdog forces exit 1
            exit_process: called with the final exit code
        """
        self.cache = cache
        self.storage = storage
        self.timeout = timeout
        self._exit_process = exit_process
        self._shutting_down = False
        self._finished = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        """True from the first shutdown call until the process exits."""
        return self._shutting_down

    async def wait_finished(self) -> None:
        """Block until the shutdown sequence has run to completion."""
        await self._finished.wait()

    async def shutdown(self, signal_name: str, listener: StoppableServer) -> None:
        """
        Release all resources and exit the process.

        Args:
            signal_name: what triggered the shutdown (logging only)
            listener: HTTP listener to stop first
        """
        if self._shutting_down:
            logger.warning(f"Shutdown already in progress, ignoring {signal_name}")
            return

        # Must stay before the first await
        self._shutting_down = True

        logger.info("=" * 80)
        logger.info(f"Received {signal_name}. Starting graceful shutdown...")
        logger.info("=" * 80)

        watchdog = asyncio.get_running_loop().call_later(self.timeout, self._force_exit)
        exit_code = EXIT_CODE_FAILURE

        try:
            # STEP 1: Stop accepting new HTTP connections
            logger.info("Closing HTTP server...")
            outcome = await listener.close()
            if outcome is CloseOutcome.NOT_RUNNING:
                logger.info("✓ HTTP server was not running")
            else:
                logger.info("✓ HTTP server closed")

            # STEP 2 + 3: best-effort release of Redis, then MongoDB
            await self._release("Redis", self.cache)
            await self._release("MongoDB", self.storage)

            exit_code = EXIT_CODE_CLEAN
            logger.info(f"Graceful shutdown complete ({signal_name})")

        except Exception as e:
            logger.error(f"Error during graceful shutdown: {str(e)}", exc_info=True)

        finally:
            watchdog.cancel()
            self._finished.set()

        self._exit_process(exit_code)

    async def _release(self, name: str, resource: Optional[Closeable]) -> None:
        if resource is None:
            return
        logger.info(f"Closing {name}...")
        try:
            await resource.close()
            logger.info(f"✓ {name} closed")
        except Exception as e:
            logger.warning(f"{name} close warning: {str(e)}")

    def _force_exit(self) -> None:
        logger.error(f"Shutdown timeout ({self.timeout:g}s). Forcing exit.")
        self._exit_process(EXIT_CODE_FAILURE)

# ================================================================================
# PROCESS-LEVEL SAFETY NET
# ================================================================================

def register_process_handlers(
    loop: asyncio.AbstractEventLoop,
    exit_process: ExitProcess = terminate,
) -> None:
    """
    Exit 1 on failures that escaped all error handling.

    Must be called early in startup, before any async operation.

    - Event loop exception handler: a task/future/callback failed and nobody
      retrieved the error (the asyncio counterpart of an unhandled rejection)
    - sys.excepthook / threading.excepthook: uncaught synchronous exception
    """

    def _on_unhandled_async(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        error = context.get("exception")
        if error is None:
            # Diagnostics without an error (e.g. a pending task destroyed)
            logger.warning(f"Event loop warning: {context.get('message')}")
            loop.default_exception_handler(context)
            return

        logger.critical(
            f"Unhandled async failure: {context.get('message', 'unknown')}. Shutting down...",
            exc_info=error,
            extra={"failure_type": "unhandledRejection"},
        )
        exit_process(EXIT_CODE_FAILURE)

    def _on_uncaught_exception(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        logger.critical(
            "UNCAUGHT EXCEPTION (origin=uncaughtException). Shutting down...",
            exc_info=(exc_type, exc_value, exc_tb),
            extra={"failure_type": "uncaughtException"},
        )
        exit_process(EXIT_CODE_FAILURE)

    def _on_thread_exception(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return

        origin = args.thread.name if args.thread is not None else "thread"
        logger.critical(
            f"UNCAUGHT EXCEPTION (origin={origin}). Shutting down...",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            extra={"failure_type": "uncaughtException"},
        )
        exit_process(EXIT_CODE_FAILURE)

    loop.set_exception_handler(_on_unhandled_async)
    sys.excepthook = _on_uncaught_exception
    threading.excepthook = _on_thread_exception

    logger.info("✓ Process-level safety handlers registered")

# ================================================================================
# SIGNAL WIRING
# ================================================================================

def register_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    coordinator: ShutdownCoordinator,
    listener: StoppableServer,
    signals: Iterable[signal.Signals] = (signal.SIGTERM, signal.SIGINT),
) -> None:
    """
    Route termination signals to coordinator.shutdown().

    Call after the listener has started.
    """
    signals = tuple(signals)
    # The loop only keeps weak references to tasks
    pending: Set[asyncio.Task] = set()

    def _trigger(sig: signal.Signals) -> None:
        task = loop.create_task(coordinator.shutdown(sig.name, listener))
        pending.add(task)
        task.add_done_callback(pending.discard)

    for sig in signals:
        try:
            loop.add_signal_handler(sig, _trigger, sig)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(
                sig,
                lambda signum, frame, s=sig: loop.call_soon_threadsafe(_trigger, s),
            )

    logger.info("✓ Shutdown handlers registered for %s", ", ".join(s.name for s in signals))
