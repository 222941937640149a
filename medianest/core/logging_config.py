"""Logging setup.

Two output formats: one JSON object per line for log shippers, or plain
text for a terminal. Both carry the ``request_id`` of the request being
served, taken from a contextvar the request middleware sets.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

_REDACTED = "***REDACTED***"
_SECRETS = (
    re.compile(r"(?i)(bearer\s+)[\w.\-]{20,}"),
    re.compile(r"(?i)((?:jwt_secret_key|secret|password|token)\s*[=:]\s*)[^\s,'\"]{8,}"),
)
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


def redact(text: str) -> str:
    for pattern in _SECRETS:
        text = pattern.sub(lambda m: m.group(1) + _REDACTED, text)
    return text


class _RequestIdFilter(logging.Filter):
    """Stamp records with the current request id and scrub credentials."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = redact(str(record.msg))
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


class _JsonFormatter(logging.Formatter):
    """``extra`` fields become top-level keys of the JSON object."""

    _BUILTIN = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"request_id", "message"}

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.request_id:
            entry["request_id"] = record.request_id
        entry.update((k, v) for k, v in vars(record).items() if k not in self._BUILTIN)
        if record.exc_info:
            entry["exc_info"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


class _TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s%(rid)s: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.rid = f" [{record.request_id}]" if record.request_id else ""
        return super().format(record)


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Replace the root handlers with one stdout handler in the chosen format."""
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_RequestIdFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else _TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging configured", extra={"level": level, "format": fmt})
