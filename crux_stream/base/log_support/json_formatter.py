"""JSON logging formatter used by the stream logging setup.

``JsonFormatter`` serializes the standard record fields and merges
non-internal extra attributes from the ``LogRecord``. When the message itself
is a JSON object (as produced by ``log_event``) its keys are hoisted to the top
level so emitted lines are not double encoded.
"""
from __future__ import annotations

import contextlib
import json
import logging
from datetime import datetime, timezone

ISO = "%Y-%m-%dT%H:%M:%S.%fZ"

# LogRecord attributes that are logging plumbing rather than event payload.
_RESERVED = frozenset(
    {
        "msg",
        "args",
        "levelname",
        "levelno",
        "name",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured stream logs."""

    def format(self, record: logging.LogRecord) -> str:
        out = {
            "ts": datetime.now(timezone.utc).strftime(ISO),
            "level": record.levelname,
            "logger": record.name,
        }
        text = record.getMessage()
        out["msg"] = text
        with contextlib.suppress(ValueError):
            parsed = json.loads(text)
            if isinstance(parsed, dict):
                out.update(parsed)
                # Structured events are fully represented by hoisted keys.
                if isinstance(parsed.get("event"), str):
                    out.pop("msg", None)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RESERVED or key in out:
                continue
            out[key] = value
        if record.exc_info:
            out["exc"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


__all__ = ["JsonFormatter", "ISO"]
