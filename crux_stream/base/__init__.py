"""
Stream Base Package

Cross-cutting primitives shared by the decoding pipeline:
- Errors: normalized taxonomy and structured exceptions
- Logging: shared JSON logger and structured events
- Cancellation: cooperative cancellation token
- Models / DTOs: record wire shape and pipeline data model
"""

from .cancellation import CancellationToken, CancelledError
from .errors import (
    ErrorCode,
    FinalAggregationFailure,
    RecordParseFailure,
    RepairFailure,
    StreamError,
    TransportFailure,
    classify_exception,
)
from .logging import LogContext, configure_logger, get_logger
from .models import AggregatedState, DecodedRecord, FinalPayload

__all__ = [
    # Errors
    "ErrorCode",
    "StreamError",
    "TransportFailure",
    "RecordParseFailure",
    "RepairFailure",
    "FinalAggregationFailure",
    "classify_exception",
    # Cancellation
    "CancellationToken",
    "CancelledError",
    # Logging
    "LogContext",
    "get_logger",
    "configure_logger",
    # Models
    "DecodedRecord",
    "AggregatedState",
    "FinalPayload",
]
