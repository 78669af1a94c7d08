"""Central logging configuration for the mock server.

Installs one root stdout handler so module loggers need no setup of their
own, keeps the uvicorn loggers on the same handler, and does nothing when
the root logger is already configured (reloaders, pytest's capture).
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any


def _dict_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": level, "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    if level not in logging.getLevelNamesMapping():
        level = "INFO"
    dictConfig(_dict_config(level))
