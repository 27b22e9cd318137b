"""Process-wide logging setup shared by the API, the scheduler and the CLI."""

from __future__ import annotations

import logging

from backend.app.core.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def get_logger(name: str = "sportscars") -> logging.Logger:
    level = settings.log_level.upper()
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level, logging.INFO))
    return logging.getLogger(name)
