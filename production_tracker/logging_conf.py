"""Root logger setup for the tracker server."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access",)


def resolve_level(level: str) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value."""

    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level {level!r}")
    return numeric


def configure_logging(level: str = "INFO") -> logging.Handler:
    """Send every tracker log record to stdout with a single handler.

    Handlers installed by an earlier call are replaced, so reloading the
    server does not duplicate output.
    """

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(resolve_level(level))
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


__all__ = ["configure_logging", "resolve_level"]
