"""
Logging configuration for the service.
"""

import logging
import sys

from app.config import get_settings


def setup_logging(name: str) -> logging.Logger:
    """Setup a named logger with proper format and handlers."""

    # Create logger
    logger = logging.getLogger(name)
    logger.setLevel(get_settings().log_level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    # Create console handler with formatting
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    # Create formatter
    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    # Add handler to logger
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


# Global logger instances
bot_logger = setup_logging("botforge.bot")
api_logger = setup_logging("botforge.api")
service_logger = setup_logging("botforge.services")
