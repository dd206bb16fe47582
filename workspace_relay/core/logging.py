"""
Logging setup for the relay.

Every module logs through a child of the "relay" logger
(e.g. "relay.routers.drive"), so one handler here covers the whole app.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "relay"

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None, debug: bool = False) -> logging.Logger:
    """
    Attach a stdout handler to the "relay" logger.

    Safe to call more than once (tests and uvicorn reloads do); a second
    call only adjusts the level.

    Args:
        level: Level name such as "INFO" (defaults to INFO)
        debug: Force DEBUG regardless of level

    Returns:
        The configured "relay" logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    resolved = logging.DEBUG if debug else logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.setLevel(resolved)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger


def mask_token(token: Optional[str], visible: int = 6) -> str:
    """Shorten a secret for log lines: 'abc123...'."""
    if not token:
        return "<none>"
    if len(token) <= visible:
        return "***"
    return f"{token[:visible]}..."
