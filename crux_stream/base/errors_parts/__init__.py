"""Errors parts package public surface.

Prefer importing from ``crux_stream.base.errors`` for the stable surface.
"""

from .error_code import ErrorCode
from .stream_error import (
    FinalAggregationFailure,
    RecordParseFailure,
    RepairFailure,
    StreamError,
    TransportFailure,
)
from .classification import classify_exception

__all__ = [
    "ErrorCode",
    "StreamError",
    "TransportFailure",
    "RecordParseFailure",
    "RepairFailure",
    "FinalAggregationFailure",
    "classify_exception",
]
