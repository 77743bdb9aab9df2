# roomrelay/core/logging.py

import logging
import sys

from roomrelay.core.config import settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-frame chatter already covered by our own connection/broadcast logs
_QUIET_LOGGERS = ("uvicorn.access", "websockets.server", "websockets.protocol")


def setup_logging() -> None:
    """Send relay logs to stdout at LOG_LEVEL; leaves an existing setup (uvicorn's) alone."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
