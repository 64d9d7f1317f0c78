"""
Logging setup for storedemo.

Production writes one JSON object per line; every other APP_ENV gets a
coloured console line. Both carry the per-request context set by
RequestLoggingMiddleware and the store fields passed through `extra=`:

    logger.info("[selftest][s3] put %s", key, extra={"store": "s3", "key": key})

Usage:
    from storedemo.app.core.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storedemo.app.core.config import Settings, settings as default_settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)

# LOG_LEVEL accepts the short names used by the deployment manifests
_LEVEL_ALIASES = {
    "warn": logging.WARNING,
    "fatal": logging.CRITICAL,
}

# Fields lifted from `extra=` into the JSON entry
_EXTRA_FIELDS = (
    "store", "key", "item_id", "duration_ms", "status_code", "endpoint",
    "attempt", "platform",
)

# SDK loggers that are chatty at INFO
_NOISY_LOGGERS = ("uvicorn.access", "botocore", "boto3", "urllib3", "asyncio")


def set_request_context(**kwargs: Any) -> None:
    _request_context.set(kwargs)


def clear_request_context() -> None:
    _request_context.set({})


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def resolve_level(name: str) -> int:
    """Map a LOG_LEVEL string to a logging level, defaulting to INFO."""
    lowered = name.strip().lower()
    if lowered in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[lowered]
    level = logging.getLevelName(lowered.upper())
    return level if isinstance(level, int) else logging.INFO


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with service and environment."""

    def __init__(self, service: str = "storedemo", environment: str = ""):
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.environment:
            entry["env"] = self.environment

        ctx = get_request_context()
        if ctx:
            entry["request"] = ctx
        entry.update(
            (key, getattr(record, key)) for key in _EXTRA_FIELDS if hasattr(record, key)
        )

        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["exception"] = {
                "type": type(exc).__name__,
                "message": str(exc),
                "trace": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """`12:00:01 WARNING  [a1b2c3d4] logger: message` with a coloured level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        request_id = get_request_context().get("request_id")
        tag = f" [{request_id[:8]}]" if request_id else ""
        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} {record.levelname:8s}{self.RESET}"
            f"{tag} {record.name}: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(config: Optional[Settings] = None) -> None:
    """Install a single stdout handler on the root logger."""
    config = config or default_settings

    handler = logging.StreamHandler(sys.stdout)
    if config.is_production:
        handler.setFormatter(JSONFormatter(config.APP_NAME, config.APP_ENV))
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(config.LOG_LEVEL))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
