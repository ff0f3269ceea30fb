"""
Logging setup: JSON lines in production, plain text for local runs.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

_EXTRA_KEYS = ("task_id", "operation", "error_code", "path")
_HANDLER_NAME = "task_api"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure the root logger with a single stream handler.

    Calling it again replaces the handler installed by a previous call rather
    than stacking another one.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
