"""Root logger configuration: rich console output in development, JSON lines in production."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from rich.console import Console
from rich.logging import RichHandler

_QUIET_LOGGERS = ("urllib3",)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, ASCII only."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(app_env: str) -> logging.Handler:
    """Install a single root handler for ``app_env`` and return it."""
    handler: logging.Handler
    if app_env == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        level = logging.INFO
    else:
        handler = RichHandler(
            console=Console(file=sys.stdout),
            log_time_format="%I:%M%p",
            rich_tracebacks=True,
        )
        level = logging.DEBUG

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


__all__ = ["JsonFormatter", "configure_logging"]
