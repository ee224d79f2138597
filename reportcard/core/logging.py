"""Structured JSON logging configuration.

All log output goes to stdout in JSON format so acquisition and analysis
runs can be followed line by line by whatever collects container logs.

Format per line:
    {"ts": "2025-03-01T12:00:00Z", "level": "INFO", "logger": "reportcard.services.dispatcher", "msg": "...", ...}
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes callers may attach via ``extra={...}``
CONTEXT_FIELDS = ("source_kind", "analyzer_id", "workspace", "cache_key")


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging() -> None:
    """Configure root logger with JSON output to stdout.

    The log level is controlled by the ``LOG_LEVEL`` env var
    (default ``INFO``).
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level)

    root.handlers.clear()
    root.addHandler(handler)

    # GitPython logs every spawned git command at DEBUG/INFO
    for noisy in ("httpcore", "httpx", "git.cmd"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
