"""
Logging setup.

Console output plus two files under the log directory:
combined.log (everything at the configured level) and error.log (ERROR+).
Modules log through `logging.getLogger(__name__)`; this only wires handlers
on the root logger.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Marks handlers installed here so a second call replaces instead of stacking
_HANDLER_MARK = "_matchpod_handler"


def resolve_level(level: str) -> int:
    return _LEVELS.get(level.lower(), logging.INFO)


def setup_logging(level: str = "info", log_dir: Optional[str] = "logs") -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: debug | info | warn | error
        log_dir: directory for combined.log / error.log; None disables files

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers = [console]

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)

        combined = logging.FileHandler(path / "combined.log", encoding="utf-8")
        combined.setFormatter(formatter)

        errors = logging.FileHandler(path / "error.log", encoding="utf-8")
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)

        handlers.extend([combined, errors])

    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)

    # uvicorn's access log is replaced by the request context middleware
    logging.getLogger("uvicorn.access").propagate = False

    return root
