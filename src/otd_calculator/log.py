"""Logging configuration for the OTD calculator."""

from __future__ import annotations

import logging
import sys


def setup_logging(
    level: int = logging.WARNING,
    module_name: str = "otd_calculator",
) -> logging.Logger:
    """Configure and return the package logger with consistent formatting.

    Any handler from a previous call is replaced, so repeated calls leave a
    single handler bound to the current stderr.
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    return logger
