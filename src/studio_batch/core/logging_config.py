"""Centralized logging configuration for the studio batch pipeline."""

import os
import sys
import logging
from typing import Optional


def setup_logger(
    name: str = "studio-batch",
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "studio-batch")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        env_format = os.getenv("LOG_FORMAT", format_type).lower()

        if env_format == "structured":
            formatter = logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)-8s | "
                "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = "studio-batch") -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Component loggers are namespaced under "studio-batch" so a single
    level change on the root pipeline logger reaches all of them.

    Args:
        name: Component name, or a fully qualified logger name

    Returns:
        Configured logger instance
    """
    if name != "studio-batch" and not name.startswith("studio-batch."):
        name = f"studio-batch.{name}"
    return setup_logger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch every pipeline logger, existing and future, to DEBUG (or back to INFO)."""
    level = logging.DEBUG if enabled else logging.INFO
    os.environ["LOG_LEVEL"] = logging.getLevelName(level)
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name == "studio-batch" or name.startswith("studio-batch."):
            if isinstance(existing, logging.Logger):
                existing.setLevel(level)


# Create default logger instance
logger = setup_logger()
