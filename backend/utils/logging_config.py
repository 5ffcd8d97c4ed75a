"""
Logging setup for the Brick Shop API.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires the root logger once at startup (console, plus a file when LOG_FILE is
set) and lowers the verbosity of chatty third-party loggers.
"""

import logging
import sys

from config import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"


def setup_logging(level: str = None, log_file: str = None):
    """
    Configures the root logger.

    Args:
        level (str): Log level name, defaults to settings.LOG_LEVEL.
        log_file (str): Optional file path, defaults to settings.LOG_FILE.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = log_file or settings.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        handlers=handlers,
    )

    # Reduce verbosity from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
