"""
Logging configuration.

Standard-library logging with a single console handler. Call LoggingConfig()
once at process start (app factory, scripts); modules then use
logging.getLogger(__name__) or get_logger("<area>").
"""

from __future__ import annotations

import logging
import logging.config
from typing import Optional

from app.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "crm_sync"

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("urllib3", "sqlalchemy.engine", "uvicorn.access")


class LoggingConfig:
    """Apply the service logging configuration (idempotent)."""

    _configured = False

    def __init__(self, level: Optional[str] = None) -> None:
        if LoggingConfig._configured:
            return
        level = (level or get_settings().log_level or "INFO").upper()
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {"default": {"format": LOG_FORMAT}},
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "formatter": "default",
                    }
                },
                "root": {"handlers": ["console"], "level": level},
            }
        )
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        LoggingConfig._configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the service root logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
