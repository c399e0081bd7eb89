# app/core/logging_config.py
"""
Logging setup for the application.

Modules keep using ``logging.getLogger(__name__)``; this module only wires the
root logger once at startup and makes the current request id available to
every record.
"""

import logging
import logging.config
from contextvars import ContextVar
from typing import Optional

from app.core.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

_CONFIGURED = False


class RequestIdFilter(logging.Filter):
    """Stamps each record with the id of the request being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_ctx.get()
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings. Safe to call more than once."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = (level or settings.LOG_LEVEL).upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": RequestIdFilter},
            },
            "formatters": {
                "default": {"format": settings.LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_id"],
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
            "loggers": {
                # SQL echo is controlled by DB_ECHO, keep the engine quiet otherwise
                "sqlalchemy.engine": {"level": "WARNING"},
                "uvicorn.access": {"level": "WARNING"},
            },
        }
    )
    _CONFIGURED = True
    logging.getLogger(__name__).info(
        "Logging configured", extra={"log_level": log_level}
    )
