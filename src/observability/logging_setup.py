"""Logging for the mock server (one JSON object per line) and the CLI (rich)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from ..config import load_settings
from .context import get_request_id

# Attributes every LogRecord has; anything else arrived through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Keys that lead each JSON line so request logs scan the same way.
_FIRST_KEYS = ("event", "request_id", "status_code", "method", "path")

_handler: Optional[logging.Handler] = None


class _RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class _JsonLineFormatter(logging.Formatter):
    """Render a record plus its ``extra`` fields as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and value is not None
        }
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        for key in _FIRST_KEYS:
            if key in fields:
                line[key] = fields.pop(key)
        line["message"] = record.getMessage()
        line.update(fields)
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def _build_handler(fmt: str, stream: Optional[IO[str]]) -> logging.Handler:
    if fmt == "rich":
        console = Console(file=stream) if stream is not None else Console(stderr=True)
        return RichHandler(console=console, show_path=False, markup=False)
    handler = logging.StreamHandler(stream or sys.stdout)
    if fmt == "json":
        handler.setFormatter(_JsonLineFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    return handler


def configure_logging(
    fmt: Optional[str] = None,
    level: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Install (or replace) this package's handler on the root logger.

    ``fmt`` is ``json``, ``rich`` or ``text``; it and ``level`` default to
    ``APP_LOG_FORMAT`` / ``APP_LOG_LEVEL``. Handlers installed by others are
    left in place.
    """
    global _handler

    settings = load_settings()
    fmt = (fmt or settings.log_format).lower()
    level_name = (level or settings.log_level).upper()

    handler = _build_handler(fmt, stream)
    handler.addFilter(_RequestIdFilter())

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))
    _handler = handler

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True

    return handler
