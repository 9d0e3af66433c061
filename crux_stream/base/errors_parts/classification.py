"""
Transport error classification.

Maps exceptions raised by a chunk source (httpx, sockets, user iterators) to a
normalized :class:`ErrorCode`, an optional HTTP status, and a retryable hint.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Tuple

import httpx

from .error_code import ErrorCode
from .stream_error import StreamError


def _extract_status(exc: BaseException) -> Optional[int]:
    """Attempt to extract an HTTP status code from a transport exception.

    Supported attribute shapes (checked in order):
    - ``exc.status_code``
    - ``exc.status``
    - ``exc.response.status_code``
    """
    for attr in ("status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


# Statuses worth retrying from the caller's side (the pipeline itself never retries).
_RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


def classify_exception(exc: BaseException) -> Tuple[ErrorCode, Optional[int], bool]:
    """Classify ``exc`` into ``(code, status, retryable)``.

    Precedence:
        1. ``StreamError`` passthrough.
        2. Timeouts (builtin, asyncio, httpx) -> ``TIMEOUT``, retryable.
        3. HTTP status -> ``TRANSPORT`` with status-derived retryable hint.
        4. Connection-level httpx errors -> ``TRANSPORT``, retryable.
        5. Anything else -> ``TRANSPORT``, not retryable.
    """
    if isinstance(exc, StreamError):
        return exc.code, exc.status, exc.retryable
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorCode.TIMEOUT, None, True
    status = _extract_status(exc)
    if status is not None:
        return ErrorCode.TRANSPORT, status, status in _RETRYABLE_STATUSES
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ErrorCode.TRANSPORT, None, True
    return ErrorCode.TRANSPORT, None, False


__all__ = ["classify_exception", "_extract_status"]
