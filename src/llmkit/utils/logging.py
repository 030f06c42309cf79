"""Structured logging configuration.

Log records go to stderr so that the Rich console output of the CLI demos
stays readable on stdout.
"""

import logging
import json
import sys
from typing import Any, Dict, Optional

from ..config.settings import settings

_PACKAGE_LOGGER = "llmkit"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra"):
            log_data.update(record.extra)  # type: ignore
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _build_handler(log_format: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Return a module logger hanging off the shared ``llmkit`` logger.

    The package logger owns the single handler; module loggers propagate
    to it so that ``set_log_level`` affects every module at once.
    """
    root = logging.getLogger(_PACKAGE_LOGGER)
    if not root.handlers:
        root.addHandler(_build_handler(settings.log_format))
        root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    if name == _PACKAGE_LOGGER or name.startswith(_PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_PACKAGE_LOGGER}.{name}")


def set_log_level(level: Optional[str]) -> None:
    """Override the configured level, e.g. from a ``--log-level`` CLI flag."""
    if not level:
        return
    get_logger(_PACKAGE_LOGGER).setLevel(getattr(logging, level.upper(), logging.INFO))
