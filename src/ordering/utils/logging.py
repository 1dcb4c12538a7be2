"""Logging setup for BrewDrop.

Records flow through stdlib logging and are rendered by structlog: readable
key/value lines during development, one JSON object per line when
``BREWDROP_LOG_FORMAT=json`` (the default when ``PROTEAN_ENV=production``).
Request handlers bind the acting user with ``add_context`` so every line
written while serving the request carries it.
"""

import logging
import os
import sys
from typing import Any

import structlog

_DEFAULT_LEVELS = {
    "production": "INFO",
    "test": "WARNING",
}

# Libraries that log every request or query at INFO
_QUIET_LOGGERS = ("protean", "httpx", "cloudinary", "sqlalchemy.engine")


def _environment() -> str:
    return (os.getenv("PROTEAN_ENV") or "development").lower()


def log_level() -> str:
    return os.getenv("BREWDROP_LOG_LEVEL", _DEFAULT_LEVELS.get(_environment(), "DEBUG")).upper()


def json_output() -> bool:
    default = "json" if _environment() == "production" else "console"
    return os.getenv("BREWDROP_LOG_FORMAT", default).lower() == "json"


def configure_logging() -> None:
    """Route stdlib logging to stdout and install the structlog pipeline."""
    level = log_level()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = structlog.processors.JSONRenderer() if json_output() else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**values: Any) -> None:
    """Attach ``values`` to every log line for the rest of the current request."""
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
