"""Streaming package: incremental decoding of chunked NDJSON record streams.

Exposes the buffering, decoding, folding, and resolution stages plus the
pipeline that wires them to a chunk source.
"""

from .line_buffer import LineBuffer, iter_segments
from .repair import repair_json, strip_code_fences
from .record_decoder import RecordDecoder
from .aggregator import StreamAggregator, aggregate, normalize_fragment
from .resolver import FinalPayloadResolver, resolve
from .progress import StreamProgress
from .sources import (
    AsyncChunkSource,
    AsyncIteratorChunkSource,
    ChunkSource,
    IteratorChunkSource,
    as_async_chunk_source,
    as_chunk_source,
)
from .pipeline import AsyncStreamPipeline, StreamPipeline, adecode_stream, decode_stream, iter_records

__all__ = [
    "LineBuffer",
    "iter_segments",
    "repair_json",
    "strip_code_fences",
    "RecordDecoder",
    "StreamAggregator",
    "aggregate",
    "normalize_fragment",
    "FinalPayloadResolver",
    "resolve",
    "StreamProgress",
    "ChunkSource",
    "AsyncChunkSource",
    "IteratorChunkSource",
    "AsyncIteratorChunkSource",
    "as_chunk_source",
    "as_async_chunk_source",
    "StreamPipeline",
    "AsyncStreamPipeline",
    "iter_records",
    "decode_stream",
    "adecode_stream",
]
