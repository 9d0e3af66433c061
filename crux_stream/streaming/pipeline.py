"""Stream pipeline orchestration.

raw chunks -> LineBuffer -> segments -> RecordDecoder -> records
           -> StreamAggregator -> AggregatedState -> FinalPayloadResolver -> FinalPayload

The pipeline is pull-based: the next chunk is requested only after every
record of the previous chunk has been handed to the consumer, so unprocessed
chunks never pile up. Each instance owns its own buffer and fold state and
serves exactly one stream.

Exit paths and the chunk source:

- normal completion, transport failure, cancellation (token or closing the
  record generator) all release the source exactly once;
- on transport failure or cancellation the partial state is discarded and
  no payload is produced.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import AsyncGenerator, AsyncIterator, Generator, Iterator, List, Optional

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import ErrorCode, StreamError, TransportFailure, classify_exception
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import AggregatedState, DecodedRecord, FinalPayload
from ..base.tracing import open_span
from ..config import StreamConfig, get_stream_config
from .aggregator import StreamAggregator
from .line_buffer import LineBuffer
from .progress import StreamProgress
from .record_decoder import ErrorCallback, RecordDecoder
from .resolver import FinalPayloadResolver
from .sources import AsyncChunkInput, ChunkInput, as_async_chunk_source, as_chunk_source


class _PipelineCore:
    """State and per-chunk processing shared by the sync and async pipelines."""

    def __init__(
        self,
        *,
        config: Optional[StreamConfig],
        on_error: Optional[ErrorCallback],
        cancellation_token: Optional[CancellationToken],
        logger: Optional[logging.Logger],
        stream_id: Optional[str],
        source_name: Optional[str],
    ) -> None:
        self.config = config or get_stream_config()
        self._logger = logger or get_logger("crux_stream.pipeline")
        # Per-stream child: cancelling the stream never cancels the caller's token.
        self._parent_token = cancellation_token
        self._token = cancellation_token.child() if cancellation_token is not None else CancellationToken()
        self.ctx = LogContext(stream_id=stream_id or uuid.uuid4().hex[:12], source=source_name)
        self._buffer = LineBuffer(
            encoding=self.config.encoding,
            errors=self.config.decode_errors,
            delimiter=self.config.line_delimiter,
        )
        self._decoder = RecordDecoder(config=self.config, on_error=on_error, logger=self._logger, ctx=self.ctx)
        self._resolver = FinalPayloadResolver(config=self.config, logger=self._logger, ctx=self.ctx)
        self.progress = StreamProgress()
        self.state: Optional[AggregatedState] = None
        self._started = False
        self._released = False
        self._t0 = 0.0

    @property
    def issues(self) -> List[StreamError]:
        """Recoverable failures observed so far."""
        return self._decoder.issues

    def _begin(self) -> None:
        if self._started:
            raise RuntimeError("stream pipeline is single-use; records() was already called")
        self._started = True
        self._t0 = time.perf_counter()
        normalized_log_event(self._logger, "stream.start", self.ctx, phase="start", level=logging.DEBUG)

    @property
    def cancellation_token(self) -> CancellationToken:
        """Token scoped to this stream (a child of the caller's token, if any)."""
        return self._token

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel this stream only; takes effect before the next chunk request."""
        self._token.cancel(reason)

    def _check_cancelled(self) -> None:
        self._token.raise_if_cancelled()

    def _detach_token(self) -> None:
        if self._parent_token is not None:
            self._parent_token.unlink_child(self._token)

    def _transport_failure(self, exc: Exception) -> TransportFailure:
        code, status, retryable = classify_exception(exc)
        failure = TransportFailure(
            message=f"failed to read next chunk: {exc}",
            status=status,
            retryable=retryable,
            raw=exc,
        )
        if code is ErrorCode.TIMEOUT:
            failure.code = ErrorCode.TIMEOUT
        return failure

    def _on_chunk(self, chunk: bytes) -> List[DecodedRecord]:
        self.progress.chunks += 1
        self.progress.bytes += len(chunk)
        return self._decode_segments(self._buffer.feed(chunk))

    def _on_end(self) -> List[DecodedRecord]:
        return self._decode_segments(self._buffer.flush())

    def _decode_segments(self, segments: List[str]) -> List[DecodedRecord]:
        records: List[DecodedRecord] = []
        for segment in segments:
            records.extend(self._decoder.decode(segment))
        self.progress.segments = self._decoder.segments
        self.progress.dropped = len(self._decoder.issues)
        if records:
            if self.progress.time_to_first_record_ms is None:
                self.progress.time_to_first_record_ms = (time.perf_counter() - self._t0) * 1000.0
            self.progress.records += len(records)
            if self.ctx.model_version is None:
                self.ctx.model_version = next((r.model_version for r in records if r.model_version), None)
        return records

    def _finish(self, span, outcome: Optional[BaseException]) -> None:
        self.progress.total_duration_ms = (time.perf_counter() - self._t0) * 1000.0
        span.set_attribute("stream.chunks", self.progress.chunks)
        span.set_attribute("stream.records", self.progress.records)
        span.set_attribute("stream.dropped", self.progress.dropped)
        fields = dict(
            records=self.progress.records,
            chunks=self.progress.chunks,
            bytes=self.progress.bytes,
            dropped=self.progress.dropped,
            time_to_first_record_ms=self.progress.time_to_first_record_ms,
            total_duration_ms=self.progress.total_duration_ms,
        )
        if outcome is None:
            normalized_log_event(self._logger, "stream.end", self.ctx, phase="finalize", **fields)
        elif isinstance(outcome, (CancelledError, GeneratorExit, asyncio.CancelledError)):
            normalized_log_event(
                self._logger,
                "stream.cancelled",
                self.ctx,
                phase="finalize",
                error_code=ErrorCode.CANCELLED.value,
                reason=str(outcome) or "consumer closed the stream",
                **fields,
            )
        else:
            span.record_exception(outcome)
            code = outcome.code.value if isinstance(outcome, StreamError) else ErrorCode.UNKNOWN.value
            normalized_log_event(
                self._logger,
                "stream.error",
                self.ctx,
                phase="finalize",
                error_code=code,
                level=logging.ERROR,
                error=str(outcome),
                **fields,
            )
        span.end()

    def _release_failed(self, exc: Exception) -> None:
        # Release problems must not mask the stream outcome.
        normalized_log_event(
            self._logger,
            "stream.release.error",
            self.ctx,
            phase="release",
            error_code=ErrorCode.TRANSPORT.value,
            level=logging.WARNING,
            error=str(exc),
        )


class StreamPipeline(_PipelineCore):
    """Decode one chunked stream.

    Parameters:
        source: A :class:`ChunkSource`, any iterable of ``bytes``, or ``bytes``.
        config: Pipeline settings; defaults to :func:`get_stream_config`.
        on_error: Callback for recoverable record failures.
        cancellation_token: Caller token; the pipeline polls its own child of
            it before every chunk request (see :meth:`cancel`).
        logger: Logger for lifecycle events.
        stream_id: Identifier echoed in every log event (random by default).
        source_name: Free-form transport label for logs (e.g. a URL).

    Usage::

        pipeline = StreamPipeline(response.iter_bytes())
        for record in pipeline.records():
            show_progress(pipeline.progress)
        ...
        payload = StreamPipeline(chunks).run()
    """

    def __init__(
        self,
        source: ChunkInput,
        *,
        config: Optional[StreamConfig] = None,
        on_error: Optional[ErrorCallback] = None,
        cancellation_token: Optional[CancellationToken] = None,
        logger: Optional[logging.Logger] = None,
        stream_id: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            config=config,
            on_error=on_error,
            cancellation_token=cancellation_token,
            logger=logger,
            stream_id=stream_id,
            source_name=source_name,
        )
        self._source = as_chunk_source(source)
        self._gen: Optional[Generator[DecodedRecord, None, None]] = None

    def __enter__(self) -> "StreamPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def records(self) -> Iterator[DecodedRecord]:
        """Yield decoded records lazily, in arrival order.

        Single-use and single-consumer. Closing the generator early releases
        the source.
        """
        self._begin()
        self._gen = self._run_records()
        return self._gen

    def close(self) -> None:
        """Abandon the stream and release the source if still held."""
        if self._gen is not None:
            self._gen.close()
        if not self._released:
            self._release()

    def _release(self) -> None:
        self._released = True
        self._detach_token()
        try:
            self._source.release()
        except Exception as e:
            self._release_failed(e)

    def _run_records(self) -> Generator[DecodedRecord, None, None]:
        span = open_span("crux_stream.decode")
        outcome: Optional[BaseException] = None
        try:
            while True:
                self._check_cancelled()
                try:
                    chunk = self._source.read()
                except (StreamError, CancelledError):
                    raise
                except Exception as e:
                    raise self._transport_failure(e) from e
                if chunk is None:
                    break
                yield from self._on_chunk(chunk)
            yield from self._on_end()
        except BaseException as e:
            outcome = e
            raise
        finally:
            self._release()
            self._finish(span, outcome)

    def run(self) -> FinalPayload:
        """Drain the stream, fold every record, and resolve the payload.

        Raises:
            TransportFailure: the source failed; partial state is discarded.
            CancelledError: the token was cancelled before end-of-stream.
            FinalAggregationFailure: the fragments did not form a document.
        """
        aggregator = StreamAggregator()
        for record in self.records():
            aggregator.add(record)
        self.state = aggregator.state
        return self._resolver.resolve(aggregator.state)


class AsyncStreamPipeline(_PipelineCore):
    """asyncio counterpart of :class:`StreamPipeline`.

    The only suspension point is the awaited chunk read. When breaking out of
    :meth:`records` early, close the generator (``contextlib.aclosing``) so
    the source is released promptly.
    """

    def __init__(
        self,
        source: AsyncChunkInput,
        *,
        config: Optional[StreamConfig] = None,
        on_error: Optional[ErrorCallback] = None,
        cancellation_token: Optional[CancellationToken] = None,
        logger: Optional[logging.Logger] = None,
        stream_id: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            config=config,
            on_error=on_error,
            cancellation_token=cancellation_token,
            logger=logger,
            stream_id=stream_id,
            source_name=source_name,
        )
        self._source = as_async_chunk_source(source)
        self._gen: Optional[AsyncGenerator[DecodedRecord, None]] = None

    async def __aenter__(self) -> "AsyncStreamPipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def records(self) -> AsyncIterator[DecodedRecord]:
        self._begin()
        self._gen = self._run_records()
        return self._gen

    async def aclose(self) -> None:
        """Abandon the stream and release the source if still held."""
        if self._gen is not None:
            await self._gen.aclose()
        if not self._released:
            await self._release()

    async def _release(self) -> None:
        self._released = True
        self._detach_token()
        try:
            await self._source.release()
        except Exception as e:
            self._release_failed(e)

    async def _run_records(self) -> AsyncGenerator[DecodedRecord, None]:
        span = open_span("crux_stream.decode")
        outcome: Optional[BaseException] = None
        try:
            while True:
                self._check_cancelled()
                try:
                    chunk = await self._source.read()
                except (StreamError, CancelledError):
                    raise
                except Exception as e:
                    raise self._transport_failure(e) from e
                if chunk is None:
                    break
                for record in self._on_chunk(chunk):
                    yield record
            for record in self._on_end():
                yield record
        except BaseException as e:
            outcome = e
            raise
        finally:
            await self._release()
            self._finish(span, outcome)

    async def run(self) -> FinalPayload:
        aggregator = StreamAggregator()
        async for record in self.records():
            aggregator.add(record)
        self.state = aggregator.state
        return self._resolver.resolve(aggregator.state)


def iter_records(chunks: ChunkInput, **kwargs) -> Iterator[DecodedRecord]:
    """Lazily decode ``chunks`` into records (see :class:`StreamPipeline`)."""
    return StreamPipeline(chunks, **kwargs).records()


def decode_stream(chunks: ChunkInput, **kwargs) -> FinalPayload:
    """Decode ``chunks`` end to end into a :class:`FinalPayload`."""
    return StreamPipeline(chunks, **kwargs).run()


async def adecode_stream(chunks: AsyncChunkInput, **kwargs) -> FinalPayload:
    """Async variant of :func:`decode_stream`."""
    return await AsyncStreamPipeline(chunks, **kwargs).run()


__all__ = [
    "StreamPipeline",
    "AsyncStreamPipeline",
    "iter_records",
    "decode_stream",
    "adecode_stream",
]
