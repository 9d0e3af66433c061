"""Error taxonomy and transport classification."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from crux_stream.base.errors import (
    ErrorCode,
    FinalAggregationFailure,
    RecordParseFailure,
    RepairFailure,
    StreamError,
    TransportFailure,
    classify_exception,
)


def test_subclass_codes_and_fatality():
    assert TransportFailure("x").code is ErrorCode.TRANSPORT  # nosec B101 - pytest assert in tests
    assert FinalAggregationFailure("x").fatal  # nosec B101 - pytest assert in tests
    assert not RecordParseFailure("x").fatal and not RepairFailure("x").fatal  # nosec B101 - pytest assert in tests
    assert ErrorCode.TIMEOUT.fatal and ErrorCode.CANCELLED.fatal  # nosec B101 - pytest assert in tests


def test_stream_error_is_an_exception_with_message():
    err = TransportFailure(message="reset", status=502)
    assert str(err) == "transport: reset" and err.args == ("reset",)  # nosec B101 - pytest assert in tests
    with pytest.raises(StreamError):
        raise err


class _StatusError(Exception):
    def __init__(self, status_code):
        super().__init__("status")
        self.status_code = status_code


@pytest.mark.parametrize(
    "exc, expected",
    [
        (TimeoutError("t"), (ErrorCode.TIMEOUT, None, True)),
        (asyncio.TimeoutError(), (ErrorCode.TIMEOUT, None, True)),
        (httpx.ReadTimeout("slow"), (ErrorCode.TIMEOUT, None, True)),
        (_StatusError(429), (ErrorCode.TRANSPORT, 429, True)),
        (_StatusError(404), (ErrorCode.TRANSPORT, 404, False)),
        (ConnectionResetError("reset"), (ErrorCode.TRANSPORT, None, True)),
        (httpx.RemoteProtocolError("eof"), (ErrorCode.TRANSPORT, None, True)),
        (ValueError("odd"), (ErrorCode.TRANSPORT, None, False)),
    ],
)
def test_classify_exception(exc, expected):
    assert classify_exception(exc) == expected  # nosec B101 - pytest assert in tests


def test_classify_passes_stream_errors_through():
    err = TransportFailure(message="x", status=503, retryable=True)
    assert classify_exception(err) == (ErrorCode.TRANSPORT, 503, True)  # nosec B101 - pytest assert in tests
