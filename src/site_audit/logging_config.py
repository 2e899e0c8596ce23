"""Logging setup for the CLI and the HTTP service.

Handlers go on the ``site_audit`` package logger only, so running inside
uvicorn leaves the server's own logging configuration alone.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

PACKAGE_LOGGER = "site_audit"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Per-request chatter from the HTTP stack
QUIET_LOGGERS = ("httpx", "httpcore", "sse_starlette", "uvicorn.access")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> logging.Logger:
    """Configure the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR); unknown names mean INFO
        log_file: Optional file that receives the same records
        format_string: Optional record format
        quiet_loggers: Third-party loggers lowered to WARNING

    Returns:
        The configured ``site_audit`` logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    # stdout carries reports and SSE records
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
