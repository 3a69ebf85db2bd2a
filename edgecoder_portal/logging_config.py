"""Logging setup for processes that embed the portal store."""
from __future__ import annotations

import logging
from logging.config import dictConfig


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler for the ``edgecoder_portal`` logger tree."""

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "edgecoder_portal": {
                    "handlers": ["console"],
                    "level": level.upper(),
                    "propagate": False,
                },
                "sqlalchemy.engine": {
                    "level": logging.WARNING,
                },
            },
        }
    )
