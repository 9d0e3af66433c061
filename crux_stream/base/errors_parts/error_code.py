"""
Normalized stream error codes (taxonomy).

Defines the ``ErrorCode`` enumeration used by the decoding pipeline, its
notifications, and structured logging. Values are lowercase snake_case and are
considered a stable public contract for logging and analytics.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated failure categories for one stream decode operation."""

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    RECORD_PARSE = "record_parse"
    REPAIR = "repair"
    FINAL_AGGREGATION = "final_aggregation"
    UNKNOWN = "unknown"

    @property
    def fatal(self) -> bool:
        """Whether an error of this category aborts the whole stream."""
        return self not in (ErrorCode.RECORD_PARSE, ErrorCode.REPAIR)


__all__ = ["ErrorCode"]
