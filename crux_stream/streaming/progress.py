"""Interim progress counters for an open stream.

Updated by the pipeline as chunks arrive so callers can render progress
(bytes received, records decoded) before the stream completes.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class StreamProgress:
    """Counters for a single stream decode.

    Attributes:
        chunks: Raw chunks received from the transport.
        bytes: Total raw bytes received.
        segments: Non-blank segments handed to the decoder.
        records: Records decoded and emitted.
        dropped: Recoverable failures (dropped segments or pieces).
        time_to_first_record_ms: Latency until the first record, if any.
        total_duration_ms: Wall time until the stream closed.
    """

    chunks: int = 0
    bytes: int = 0
    segments: int = 0
    records: int = 0
    dropped: int = 0
    time_to_first_record_ms: Optional[float] = None
    total_duration_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["StreamProgress"]
