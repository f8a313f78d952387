"""
Logging configuration for zoomvault
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Long polling and per-request access lines
NOISY_LOGGERS = ("requests", "urllib3", "httpx", "uvicorn.access")


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """
    Configure logging for the bot and the web server

    Both write through the root handler on stderr. The web server is started
    with ``log_config=None`` so uvicorn's loggers propagate here instead of
    installing handlers of their own.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        verbose: Force DEBUG regardless of ``level``
    """
    numeric_level = logging.DEBUG if verbose else logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("zoomvault").setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
