"""Chunk source boundary.

The pipeline pulls raw chunks through a two-method protocol: ``read()``
returns the next chunk or ``None`` at end-of-stream, and ``release()`` frees
the underlying transport. The pipeline guarantees ``release()`` runs exactly
once on every exit path.
"""
from __future__ import annotations

import inspect
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ChunkSource(Protocol):
    def read(self) -> Optional[bytes]:
        """Block until the next chunk is available; ``None`` means end-of-stream."""
        ...

    def release(self) -> None:
        ...


@runtime_checkable
class AsyncChunkSource(Protocol):
    async def read(self) -> Optional[bytes]:
        ...

    async def release(self) -> None:
        ...


class IteratorChunkSource:
    """Adapt any iterable of ``bytes`` (generator, file reader, SDK stream).

    ``release`` calls ``close()`` on the iterator when it has one, which runs
    a generator's cleanup code.
    """

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._iter: Iterator[bytes] = iter(chunks)
        self._done = False

    def read(self) -> Optional[bytes]:
        if self._done:
            return None
        try:
            return bytes(next(self._iter))
        except StopIteration:
            self._done = True
            return None

    def release(self) -> None:
        self._done = True
        close = getattr(self._iter, "close", None)
        if callable(close):
            close()


class AsyncIteratorChunkSource:
    """Adapt an async iterable of ``bytes`` (e.g. ``httpx.Response.aiter_bytes()``)."""

    def __init__(self, chunks: AsyncIterable[bytes]) -> None:
        self._iter: AsyncIterator[bytes] = chunks.__aiter__()
        self._done = False

    async def read(self) -> Optional[bytes]:
        if self._done:
            return None
        try:
            return bytes(await self._iter.__anext__())
        except StopAsyncIteration:
            self._done = True
            return None

    async def release(self) -> None:
        self._done = True
        aclose = getattr(self._iter, "aclose", None)
        if callable(aclose):
            result = aclose()
            if inspect.isawaitable(result):
                await result


ChunkInput = Union[ChunkSource, Iterable[bytes], bytes]
AsyncChunkInput = Union[AsyncChunkSource, AsyncIterable[bytes], Iterable[bytes], bytes]


def as_chunk_source(chunks: ChunkInput) -> ChunkSource:
    """Coerce ``chunks`` into a :class:`ChunkSource`.

    A bare ``bytes`` value is treated as a single chunk.
    """
    if isinstance(chunks, (bytes, bytearray, memoryview)):
        return IteratorChunkSource([bytes(chunks)])
    if isinstance(chunks, ChunkSource):
        return chunks
    return IteratorChunkSource(chunks)


class _SyncToAsyncSource:
    def __init__(self, source: ChunkSource) -> None:
        self._source = source

    async def read(self) -> Optional[bytes]:
        return self._source.read()

    async def release(self) -> None:
        self._source.release()


def as_async_chunk_source(chunks: AsyncChunkInput) -> AsyncChunkSource:
    """Coerce ``chunks`` into an :class:`AsyncChunkSource`.

    Sync inputs are wrapped; their reads are expected not to block the loop
    (in-memory data, pre-buffered files).
    """
    if isinstance(chunks, AsyncChunkSource) and inspect.iscoroutinefunction(chunks.read):
        return chunks
    if hasattr(chunks, "__aiter__"):
        return AsyncIteratorChunkSource(chunks)  # type: ignore[arg-type]
    return _SyncToAsyncSource(as_chunk_source(chunks))  # type: ignore[arg-type]


__all__ = [
    "ChunkSource",
    "AsyncChunkSource",
    "IteratorChunkSource",
    "AsyncIteratorChunkSource",
    "as_chunk_source",
    "as_async_chunk_source",
]
