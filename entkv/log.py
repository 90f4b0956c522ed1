"""
Logging setup for applications embedding entkv.

entkv modules only create module loggers; an application calls
setup_logging() once at startup to install handlers.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import EntKvConfig


def setup_logging(config: EntKvConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: entkv configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)
