"""
Structured logging for the facts API.

All module loggers hang off the ``factsapi`` logger, which owns the single
stdout handler.  Loggers from outside the package (tests, scripts) get their
own handler.
"""
from __future__ import annotations

import logging
import sys

from factsapi.core.config import get_settings

_ROOT = "factsapi"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _attach_handler(logger: logging.Logger) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger(_ROOT)
    _attach_handler(root)
    root.setLevel(level)
    root.propagate = False

    logger = logging.getLogger(name)
    if name != _ROOT and not name.startswith(_ROOT + "."):
        _attach_handler(logger)
        logger.setLevel(level)
    return logger
