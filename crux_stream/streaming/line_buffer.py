"""Incremental byte-to-segment buffering.

Raw transport chunks may end anywhere, including inside a multi-byte
character. :class:`LineBuffer` decodes them with an incremental codec decoder
(which carries partial byte sequences across calls), keeps the trailing
partial line, and hands back only complete segments.
"""
from __future__ import annotations

import codecs
from typing import Iterable, Iterator, List

from ..config.defaults import (
    STREAM_DEFAULT_DECODE_ERRORS,
    STREAM_DEFAULT_ENCODING,
    STREAM_DEFAULT_LINE_DELIMITER,
)


class LineBuffer:
    """Accumulate decoded text and split it into delimiter-terminated segments.

    One instance serves exactly one stream. ``feed`` may be called any number
    of times; ``flush`` marks end-of-stream and closes the buffer.
    """

    def __init__(
        self,
        *,
        encoding: str = STREAM_DEFAULT_ENCODING,
        errors: str = STREAM_DEFAULT_DECODE_ERRORS,
        delimiter: str = STREAM_DEFAULT_LINE_DELIMITER,
    ) -> None:
        if len(delimiter) != 1:
            raise ValueError("delimiter must be exactly one character")
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._delimiter = delimiter
        self._carry = ""
        self._closed = False

    @property
    def pending(self) -> str:
        """Text received after the last delimiter (not yet a segment)."""
        return self._carry

    @property
    def closed(self) -> bool:
        return self._closed

    def feed(self, chunk: bytes) -> List[str]:
        """Decode ``chunk`` and return the segments it completed, in order."""
        if self._closed:
            raise ValueError("LineBuffer already flushed")
        return self._split(self._decoder.decode(chunk, final=False))

    def flush(self) -> List[str]:
        """Signal end-of-stream; return remaining segments.

        Undecodable trailing bytes are handled per the ``errors`` policy, and a
        non-empty carry is emitted as the final segment.
        """
        if self._closed:
            return []
        segments = self._split(self._decoder.decode(b"", final=True))
        self._closed = True
        if self._carry:
            segments.append(self._carry)
            self._carry = ""
        return segments

    def _split(self, text: str) -> List[str]:
        if not text:
            return []
        pieces = (self._carry + text).split(self._delimiter)
        self._carry = pieces.pop()
        return pieces


def iter_segments(chunks: Iterable[bytes], **buffer_kwargs) -> Iterator[str]:
    """Lazily yield complete segments from an iterable of byte chunks."""
    buffer = LineBuffer(**buffer_kwargs)
    for chunk in chunks:
        yield from buffer.feed(chunk)
    yield from buffer.flush()


__all__ = ["LineBuffer", "iter_segments"]
