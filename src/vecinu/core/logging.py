"""Process-wide logging configuration."""

from __future__ import annotations

import logging.config

from vecinu.core.settings import settings


def configure_logging(level: str | None = None) -> None:
    """Install a single console handler on the root logger."""
    log_level = (level or settings.log_level).upper()
    logging.config.dictConfig(
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
            "root": {"handlers": ["console"], "level": log_level},
            "loggers": {
                "sqlalchemy.engine": {"level": "INFO" if settings.sql_debug else "WARNING"},
            },
        }
    )
