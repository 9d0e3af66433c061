"""crux_stream package

Incremental reconstruction of a structured result from a chunked
newline-delimited JSON stream emitted by a generative-text service.

Public API (re-exported):
    - Version: ``__version__``
    - Pipeline: :class:`StreamPipeline`, :class:`AsyncStreamPipeline`,
      :func:`iter_records`, :func:`decode_stream`, :func:`adecode_stream`
    - Stages: :class:`LineBuffer`, :class:`RecordDecoder`,
      :class:`StreamAggregator`, :class:`FinalPayloadResolver`
    - Model: :class:`DecodedRecord`, :class:`AggregatedState`, :class:`FinalPayload`
    - Errors: :class:`StreamError` and subclasses, :class:`ErrorCode`,
      :class:`CancelledError`
    - Config: :class:`StreamConfig`, :func:`get_stream_config`

Example::

    from crux_stream import decode_stream

    payload = decode_stream(response.iter_bytes())
    print(payload.model_version, payload.data)
"""

from .base.cancellation import CancellationToken, CancelledError
from .base.errors import (
    ErrorCode,
    FinalAggregationFailure,
    RecordParseFailure,
    RepairFailure,
    StreamError,
    TransportFailure,
)
from .base.models import AggregatedState, DecodedRecord, FinalPayload
from .config import StreamConfig, get_stream_config
from .streaming import (
    AsyncStreamPipeline,
    FinalPayloadResolver,
    LineBuffer,
    RecordDecoder,
    StreamAggregator,
    StreamPipeline,
    StreamProgress,
    adecode_stream,
    decode_stream,
    iter_records,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Pipeline
    "StreamPipeline",
    "AsyncStreamPipeline",
    "iter_records",
    "decode_stream",
    "adecode_stream",
    "StreamProgress",
    # Stages
    "LineBuffer",
    "RecordDecoder",
    "StreamAggregator",
    "FinalPayloadResolver",
    # Model
    "DecodedRecord",
    "AggregatedState",
    "FinalPayload",
    # Errors
    "ErrorCode",
    "StreamError",
    "TransportFailure",
    "RecordParseFailure",
    "RepairFailure",
    "FinalAggregationFailure",
    "CancellationToken",
    "CancelledError",
    # Config
    "StreamConfig",
    "get_stream_config",
]
