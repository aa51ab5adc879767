"""Process-wide logging setup."""

from __future__ import annotations

import logging
import logging.config
from typing import Optional

from whatsterm.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "whatsterm"


class LoggingConfig:
    """Configure console logging for the whatsterm loggers."""

    def __init__(self, level: Optional[str] = None) -> None:
        if level is None:
            level = get_settings().log_level
        self.level = level.upper()
        logging.config.dictConfig(self._build())

    def _build(self) -> dict:
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                ROOT_LOGGER_NAME: {
                    "handlers": ["console"],
                    "level": self.level,
                    "propagate": False,
                },
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the whatsterm namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
