"""
================================================================================
UTILS PACKAGE - Utility Functions and Helpers
================================================================================

Modules:
  - helpers: request ids, timing, duration formatting, secret redaction
  - logging_config: root logger setup (console + log files)

USAGE:
------
    from matchpod.utils import generate_request_id, measure_time, setup_logging

================================================================================
"""

from .helpers import (
    format_duration,
    generate_request_id,
    measure_time,
    redact_secrets,
)
from .logging_config import setup_logging

__all__ = [
    # helpers
    "format_duration",
    "generate_request_id",
    "measure_time",
    "redact_secrets",
    # logging_config
    "setup_logging",
]
