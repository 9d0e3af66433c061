"""HTTP transport adapters for the stream pipeline."""

from .client import AsyncHttpxChunkSource, HttpxChunkSource

__all__ = ["HttpxChunkSource", "AsyncHttpxChunkSource"]
