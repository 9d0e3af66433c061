"""
Structured stream error exception types.

``StreamError`` carries a normalized :class:`ErrorCode` plus optional context
(segment preview, HTTP status, original exception). Recoverable subclasses are
never raised by the decoder; they are handed to the ``on_error`` side channel.
Fatal subclasses propagate to the caller and abort the operation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass(eq=False)
class StreamError(Exception):
    """Base error for the stream decoding pipeline.

    Attributes:
        message: Human-readable description suitable for logging.
        code: Normalized failure category.
        segment: Truncated preview of the offending text, when applicable.
        status: HTTP status reported by the transport, when known.
        retryable: Hint for upstream retry logic (not authoritative).
        raw: Optional original exception for diagnostics.
    """

    message: str
    code: ErrorCode = ErrorCode.UNKNOWN
    segment: Optional[str] = None
    status: Optional[int] = None
    retryable: bool = False
    raw: Optional[BaseException] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def fatal(self) -> bool:
        return self.code.fatal

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(eq=False)
class TransportFailure(StreamError):
    """The next chunk could not be obtained. Fatal."""

    code: ErrorCode = ErrorCode.TRANSPORT


@dataclass(eq=False)
class RecordParseFailure(StreamError):
    """A segment or sub-segment could not be decoded. Recoverable."""

    code: ErrorCode = ErrorCode.RECORD_PARSE


@dataclass(eq=False)
class RepairFailure(StreamError):
    """Tolerant repair did not yield parseable text. Recoverable."""

    code: ErrorCode = ErrorCode.REPAIR


@dataclass(eq=False)
class FinalAggregationFailure(StreamError):
    """The concatenated fragment document did not parse. Fatal."""

    code: ErrorCode = ErrorCode.FINAL_AGGREGATION


__all__ = [
    "StreamError",
    "TransportFailure",
    "RecordParseFailure",
    "RepairFailure",
    "FinalAggregationFailure",
]
