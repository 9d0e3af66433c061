"""Segment-to-record decoding with bounded recovery.

A segment is one delimiter-terminated line of the upstream stream. It
normally holds exactly one JSON record, but transports and proxies also
produce lines with several records glued together (``{...}{...}``) and lines
with small malformations. Strategies, first success wins:

1. Parse the segment directly.
2. If it contains a ``}``/``{`` adjacency (whitespace allowed between),
   split at every such boundary and parse each piece on its own.
3. If nothing was recovered and the segment looks like one object
   (``{`` ... ``}``), run :func:`repair_json` and parse the result.
4. Otherwise drop the segment.

Malformed input never raises out of :meth:`RecordDecoder.decode`; every
dropped piece produces a recoverable :class:`StreamError` on the ``on_error``
side channel (also logged and kept in :attr:`RecordDecoder.issues`).

Known limitation: step 2 splits on the adjacency even when it occurs inside a
string value, so such a line can be mis-split into unparseable pieces.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from ..base.errors import RecordParseFailure, RepairFailure, StreamError
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import DecodedRecord
from ..config import StreamConfig, get_stream_config
from .repair import repair_json

ErrorCallback = Callable[[StreamError], None]

# Zero-width split point between a closing and an opening brace.
_GLUED_BOUNDARY = re.compile(r"(?<=\})\s*(?=\{)")
_ADJACENCY = re.compile(r"\}\s*\{")


def _loads(text: str) -> Tuple[bool, Any, Optional[Exception]]:
    try:
        return True, json.loads(text), None
    except (ValueError, RecursionError) as e:
        return False, None, e


class RecordDecoder:
    """Turn text segments into :class:`DecodedRecord` values.

    Parameters:
        config: Recovery toggles and preview length; defaults to
            :func:`get_stream_config`.
        on_error: Optional callback receiving every recoverable failure.
        logger: Logger for ``stream.record.dropped`` events.
        ctx: Log context shared with the owning pipeline.
    """

    def __init__(
        self,
        *,
        config: Optional[StreamConfig] = None,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[logging.Logger] = None,
        ctx: Optional[LogContext] = None,
    ) -> None:
        self._config = config or get_stream_config()
        self._on_error = on_error
        self._logger = logger or get_logger("crux_stream.decoder")
        self._ctx = ctx
        self.issues: List[StreamError] = []
        self.segments = 0

    def decode(self, segment: str) -> List[DecodedRecord]:
        """Decode one segment into zero or more records, in textual order."""
        text = segment.strip()
        if not text:
            return []
        self.segments += 1

        ok, value, first_error = _loads(text)
        if ok:
            return [DecodedRecord.from_value(value)]

        records: List[DecodedRecord] = []
        if self._config.split_glued_records and _ADJACENCY.search(text):
            for piece in _GLUED_BOUNDARY.split(text):
                piece = piece.strip()
                if not piece:
                    continue
                ok, value, err = _loads(piece)
                if ok:
                    records.append(DecodedRecord.from_value(value))
                else:
                    self._notify(RecordParseFailure(message=f"glued piece unparseable: {err}", raw=err), piece, "split")
            if records:
                return records

        if self._config.repair_enabled and text.startswith("{") and text.endswith("}"):
            repaired = repair_json(text)
            ok, value, err = _loads(repaired)
            if ok:
                return [DecodedRecord.from_value(value)]
            self._notify(RepairFailure(message=f"repair did not yield valid JSON: {err}", raw=err), text, "repair")
            return []

        self._notify(RecordParseFailure(message=f"segment unparseable: {first_error}", raw=first_error), text, "parse")
        return []

    def iter_decode(self, segments: Iterable[str]) -> Iterator[DecodedRecord]:
        """Lazily decode a segment sequence (single consumer, forward only)."""
        for segment in segments:
            yield from self.decode(segment)

    def _notify(self, error: StreamError, text: str, strategy: str) -> None:
        limit = self._config.preview_chars
        error.segment = text[:limit]
        self.issues.append(error)
        normalized_log_event(
            self._logger,
            "stream.record.dropped",
            self._ctx,
            phase="decode",
            error_code=error.code.value,
            level=logging.WARNING,
            strategy=strategy,
            segment=error.segment,
            error=error.message,
        )
        if self._on_error is not None:
            self._on_error(error)


__all__ = ["RecordDecoder", "ErrorCallback"]
