"""Root logging setup for the pricing and revenue engine.

Plain text for local runs; one JSON object per line when LOG_FORMAT=json.
Values passed through ``extra=`` (source names, error codes) land under
``context`` so log pipelines can filter degraded-source and clamp events.
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any

from crm_revenue.core.config import settings

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Loggers that are too chatty at INFO for report builds.
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "service": settings.APP_NAME,
            "env": settings.ENV,
            "message": record.getMessage(),
        }
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def init_logging(level: int | None = None, fmt: str | None = None) -> None:
    """Install a single stdout handler on the root logger; no-op if one exists."""
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or settings.LOG_FORMAT).lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root.setLevel(level or getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
