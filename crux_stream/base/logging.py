"""Structured logging utilities for the stream decoding pipeline.

One shared ``crux_stream`` logger owns the console handler; module loggers
obtained through :func:`get_logger` propagate to it, so configuration happens
in a single place and lines are never emitted twice.

Events are emitted as one JSON object per line by :func:`log_event`.
:func:`normalized_log_event` additionally guarantees the canonical keys
``phase``, ``error_code``, ``records`` and ``tokens`` so downstream filters do
not need per-event knowledge.

Environment
-----------
``CRUX_STREAM_LOG_LEVEL``
    Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) applied to the base logger.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Mapping, Optional

from .log_support import JsonFormatter, LogContext

BASE_LOGGER_NAME = "crux_stream"
LOG_LEVEL_ENV = "CRUX_STREAM_LOG_LEVEL"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_BASE_LOGGER_ATTR = "_crux_stream_logger_initialized"
_CONSOLE_HANDLER_ATTR = "_crux_stream_console_handler"
_FILE_HANDLER_ATTR = "_crux_stream_file_handler"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Parse a level name (case-insensitive) or number; unknown names give ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    return _LEVELS.get(value.strip().upper(), default)


def _formatter(json_mode: bool) -> logging.Formatter:
    return JsonFormatter() if json_mode else logging.Formatter(PLAIN_FORMAT)


def _ensure_base_logger(json_mode: bool, level: int) -> logging.Logger:
    """Initialize (once) and return the shared base logger."""
    logger = logging.getLogger(BASE_LOGGER_NAME)
    desired = _parse_level(os.getenv(LOG_LEVEL_ENV), default=level)
    if getattr(logger, _BASE_LOGGER_ATTR, False):
        if os.getenv(LOG_LEVEL_ENV) and logger.level != desired:
            logger.setLevel(desired)
        for handler in logger.handlers:
            if not getattr(handler, _CONSOLE_HANDLER_ATTR, False):
                continue
            # stderr may have been swapped (pytest capture, daemonization)
            if getattr(handler, "stream", None) is not sys.stderr:
                handler.setStream(sys.stderr)  # type: ignore[attr-defined]
            handler.setLevel(logger.level)
        return logger

    logger.setLevel(desired)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(desired)
    handler.setFormatter(_formatter(json_mode))
    setattr(handler, _CONSOLE_HANDLER_ATTR, True)
    logger.handlers[:] = [handler]
    logger.propagate = False
    setattr(logger, _BASE_LOGGER_ATTR, True)
    return logger


def get_logger(name: str = BASE_LOGGER_NAME, json_mode: bool = True, level: int = logging.INFO) -> logging.Logger:
    """Return ``name`` wired to the shared base logger.

    Child loggers carry no handlers of their own and propagate upward.
    """
    base = _ensure_base_logger(json_mode=json_mode, level=level)
    if name == BASE_LOGGER_NAME:
        return base
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        if getattr(handler, _CONSOLE_HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    return logger


def configure_logger(
    *,
    level: int | str | None = None,
    file_path: Optional[str] = None,
    json_mode: bool = True,
) -> logging.Logger:
    """Reconfigure the shared logger at runtime.

    Parameters
    ----------
    level:
        Numeric level or level name. ``None`` keeps the current level.
    file_path:
        When given, attach (or retarget) a rotating file handler writing to
        this path. When ``None``, remove any file handler this module added.
    json_mode:
        Formatter used for every handler managed here.

    Returns
    -------
    logging.Logger
        The base logger.

    Handlers attached by callers are left untouched.
    """
    logger = _ensure_base_logger(json_mode=json_mode, level=logging.INFO)
    if level is not None:
        logger.setLevel(_parse_level(level, default=logger.level))
    for handler in logger.handlers:
        if getattr(handler, _CONSOLE_HANDLER_ATTR, False) or getattr(handler, _FILE_HANDLER_ATTR, False):
            handler.setLevel(logger.level)
            handler.setFormatter(_formatter(json_mode))

    managed = [h for h in logger.handlers if getattr(h, _FILE_HANDLER_ATTR, False)]
    abs_path = os.path.abspath(os.path.expanduser(file_path)) if file_path else None
    for handler in managed:
        if abs_path is None or getattr(handler, "baseFilename", None) != abs_path:
            logger.removeHandler(handler)
            handler.close()
    if abs_path is None or any(getattr(h, "baseFilename", None) == abs_path for h in logger.handlers):
        return logger

    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    # 10MB x 5 backups
    fh = RotatingFileHandler(abs_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    setattr(fh, _FILE_HANDLER_ATTR, True)
    fh.setLevel(logger.level)
    fh.setFormatter(_formatter(json_mode))
    logger.addHandler(fh)
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    level: int = logging.INFO,
    keep_none: bool = False,
    **fields: Any,
) -> None:
    """Emit ``event`` as a single JSON line.

    ``ctx`` is merged shallowly. Keys whose value is ``None`` are dropped
    unless ``keep_none`` is set.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Dict[str, Any] = {"event": event}
    if ctx:
        payload |= ctx.to_dict()
    if keep_none:
        payload.update(fields)
    else:
        payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


# ---------------------- Normalization Layer ---------------------------------
REQUIRED_NORMALIZED_KEYS = (
    "phase",
    "error_code",
    "records",
    "tokens",
)


def _coerce_tokens(tokens: Any) -> Any:
    """Turn usage metadata into a JSON-friendly mapping (or ``None``)."""
    if tokens is None:
        return None
    if isinstance(tokens, Mapping):
        return dict(tokens.items())
    with contextlib.suppress(TypeError, ValueError):
        return dict(tokens)
    return {"value": repr(tokens)}


def normalized_log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    phase: str,
    error_code: str | None = None,
    records: int | None = None,
    tokens: Any = None,
    level: int = logging.INFO,
    **extra_fields: Any,
) -> None:
    """Emit a structured event carrying the canonical keys.

    ``phase``, ``records`` and ``tokens`` are always present (possibly
    ``null``); ``error_code`` is omitted when ``None``. ``extra_fields`` never
    overwrite a canonical value and ``None`` extras are dropped.
    """
    fields: Dict[str, Any] = {
        "phase": phase,
        "error_code": error_code,
        "records": records,
        "tokens": _coerce_tokens(tokens),
    }
    if error_code is None:
        fields.pop("error_code")
    for key, value in extra_fields.items():
        if value is None or (key in fields and fields[key] is not None):
            continue
        fields[key] = value
    log_event(logger, event, ctx, level=level, keep_none=True, **fields)


__all__ = [
    "LogContext",
    "get_logger",
    "configure_logger",
    "log_event",
    "normalized_log_event",
    "REQUIRED_NORMALIZED_KEYS",
    "BASE_LOGGER_NAME",
]
