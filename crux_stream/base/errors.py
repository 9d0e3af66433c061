"""Unified stream error taxonomy public surface.

Re-exports the implementations under ``crux_stream.base.errors_parts`` to keep
a stable import path.
"""

from .errors_parts.error_code import ErrorCode
from .errors_parts.stream_error import (
    FinalAggregationFailure,
    RecordParseFailure,
    RepairFailure,
    StreamError,
    TransportFailure,
)
from .errors_parts.classification import classify_exception

__all__ = [
    "ErrorCode",
    "StreamError",
    "TransportFailure",
    "RecordParseFailure",
    "RepairFailure",
    "FinalAggregationFailure",
    "classify_exception",
]
