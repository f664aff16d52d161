"""
logger factory shared by all graspalign modules.

the solver runs inside a per-frame physics loop, so everything it emits
sits at DEBUG. set GRASPALIGN_LOG_LEVEL=DEBUG to watch grasp lifecycle
events and solve diagnostics.

module loggers carry no handlers of their own; records propagate to the
"graspalign" package logger, which gets one console handler unless the
application has already configured the root logger.
"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PACKAGE_LOGGER = "graspalign"


def setup_logger(name: str, level: str = "WARNING") -> logging.Logger:
    """
    Setup a logger, attaching the console handler to the package logger once.

    Args:
        name: Name of the logger (usually __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    package = logging.getLogger(PACKAGE_LOGGER)
    # handler already attached, or the application handles output itself
    if package.handlers or logging.getLogger().handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    package.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the level taken from GRASPALIGN_LOG_LEVEL."""
    return setup_logger(name, level=os.getenv("GRASPALIGN_LOG_LEVEL", "WARNING"))
