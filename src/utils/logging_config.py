"""Structured logger setup shared across handlers and services."""

import logging
import os
from typing import Dict

from pythonjsonlogger import jsonlogger

_loggers: Dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """
    Configure a JSON logger once and reuse it.

    Log level comes from LOG_LEVEL so noisy environments can be tuned
    without a redeploy; ``configure_logging`` overrides it at cold start.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(asctime)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    _loggers[name] = logger
    return logger


def configure_logging(level: str) -> None:
    """Apply ``level`` to every logger handed out by ``get_logger`` so far."""
    resolved = level.upper()
    for logger in _loggers.values():
        logger.setLevel(resolved)
