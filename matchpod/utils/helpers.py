"""
================================================================================
HELPERS - request ids, timing, log-safe error text
================================================================================

PURPOSE:
--------
Small helpers shared by the API layer and the service handlers:
  - Request ID generation
  - Time measurement
  - Duration formatting
  - Secret redaction for log lines

================================================================================
"""

import logging
import re
import time
import uuid
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_PASSWORD_PATTERN = re.compile(r"password[^,\s]*", re.IGNORECASE)
# user:pass@ in connection URIs (mongodb://, redis://)
_URI_CREDENTIALS_PATTERN = re.compile(r"//[^/@\s]+@")


def generate_request_id() -> str:
    """Request id for X-Request-ID when the client did not send one."""
    return str(uuid.uuid4())


@contextmanager
def measure_time(operation_name: str):
    """
    Log how long a startup step took.

    Usage:
        with measure_time("MongoDB connect"):
            await mongo.connect()
        # Logs: "✓ MongoDB connect completed in 125.5ms"

    Only a successful block is logged as completed; an exception propagates
    untouched.
    """
    start_time = time.perf_counter()
    logger.debug(f"Starting: {operation_name}")

    yield

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"✓ {operation_name} completed in {format_duration(duration_ms)}")


def format_duration(milliseconds: float) -> str:
    """
    Format milliseconds to human-readable duration.

    Examples:
        >>> format_duration(125.5)
        '125.5ms'
        >>> format_duration(2500)
        '2.50s'
    """
    if milliseconds < 1000:
        return f"{milliseconds:.1f}ms"
    return f"{milliseconds / 1000:.2f}s"


def redact_secrets(message: str) -> str:
    """Mask password fragments and URI credentials in connection error messages."""
    message = _URI_CREDENTIALS_PATTERN.sub("//***@", message)
    return _PASSWORD_PATTERN.sub("password=***", message)
