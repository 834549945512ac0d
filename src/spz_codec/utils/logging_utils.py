"""
Logging utilities for the spz codec.

Provides console logging setup and a timing context manager.
"""

import logging
import time
from typing import Optional

LOGGER_NAME = 'spz_codec'


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Configure logging for the codec and its command-line tools.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Only show WARNING and above

    Returns:
        Configured logger
    """
    # Determine log level
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    ))
    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


class Timer:
    """Context manager for timing operations with automatic logging."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        """
        Initialize timer.

        Args:
            name: Name of the operation being timed
            logger: Logger to use (defaults to the spz_codec logger)
        """
        self.name = name
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        """Start timing."""
        self.start_time = time.time()
        self.logger.debug("%s started...", self.name)
        return self

    def __exit__(self, *args):
        """Stop timing and log result."""
        self.elapsed = time.time() - self.start_time
        if self.elapsed < 1:
            self.logger.info("%s complete in %.0fms", self.name, self.elapsed * 1000)
        else:
            self.logger.info("%s complete in %.1fs", self.name, self.elapsed)
