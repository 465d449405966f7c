"""Structured Logging — one-line JSON records for the API and the seed script.

Invariants:
    - Each record carries time (UTC, millisecond ISO with Z), level, logger and message
    - Request and domain context (path, user_id, server_id, collection, attempt, ...)
      is copied from `extra=` only when set
    - Re-running setup swaps the root handler; records are never emitted twice

Design Decisions:
    - Hand-written formatter on stdlib logging, no logging framework
    - Chatty third-party loggers (uvicorn access, pymilvus, httpx) are capped at
      WARNING so request logs stay readable
"""

import json
import logging
from datetime import datetime, timezone

_CONTEXT_FIELDS = (
    "error_code", "error_category", "path", "method", "status_code",
    "user_id", "auth_method", "server_id", "primary_analytic_id", "cctv_id",
    "collection", "attempt", "record_count",
)

_QUIET_LOGGERS = ("uvicorn.access", "pymilvus", "httpx")

_root_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "time": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in _CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the root handler: JSON by default, plain text when fmt == "text"."""
    global _root_handler
    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s | %(message)s")
    )
    root = logging.getLogger()
    if _root_handler is not None:
        root.removeHandler(_root_handler)
    root.addHandler(handler)
    root.setLevel(level.upper() if level.upper() in logging.getLevelNamesMapping() else "INFO")
    _root_handler = handler
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
