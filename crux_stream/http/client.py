"""httpx-backed chunk sources.

Purpose:
    Feed a streaming HTTP response body into :class:`StreamPipeline` /
    :class:`AsyncStreamPipeline` through the ``ChunkSource`` protocol.

External dependencies:
    - ``httpx`` for the sync and async clients.

Lifecycle:
    - ``open`` sends the request with ``stream=True`` and checks the status
      before any body byte is read; an error status closes the response (and
      an owned client, even when reading the error body fails) and raises
      :class:`TransportFailure` (body preview in the message).
    - ``release`` closes the response and, when ``open`` created the client
      itself, the client as well. Errors raised while iterating the body
      propagate to the pipeline, which wraps them as ``TransportFailure``.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Optional, AsyncIterator

import httpx

from ..base.errors import TransportFailure, classify_exception
from ..config import get_stream_config
from ..config.defaults import STREAM_DEFAULT_ACCEPT

_ERROR_BODY_PREVIEW = 300


def _headers(headers: Optional[Mapping[str, str]]) -> dict:
    merged = {"Accept": STREAM_DEFAULT_ACCEPT}
    merged.update(headers or {})
    return merged


def _status_failure(response: httpx.Response, body: bytes) -> TransportFailure:
    code, status, retryable = classify_exception(httpx.HTTPStatusError("", request=response.request, response=response))
    text = body[:_ERROR_BODY_PREVIEW].decode("utf-8", errors="replace")
    return TransportFailure(
        message=f"upstream returned HTTP {response.status_code}: {text}",
        code=code,
        status=status,
        retryable=retryable,
    )


def _connect_failure(exc: Exception) -> TransportFailure:
    code, status, retryable = classify_exception(exc)
    return TransportFailure(message=f"request failed: {exc}", code=code, status=status, retryable=retryable, raw=exc)


class HttpxChunkSource:
    """Sync chunk source over an open streaming ``httpx.Response``."""

    def __init__(
        self,
        response: httpx.Response,
        *,
        chunk_size: Optional[int] = None,
        owned_client: Optional[httpx.Client] = None,
    ) -> None:
        self.response = response
        self._chunks: Iterator[bytes] = response.iter_bytes(chunk_size)
        self._owned_client = owned_client

    @classmethod
    def open(
        cls,
        url: str,
        *,
        method: str = "POST",
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
    ) -> "HttpxChunkSource":
        """Send the request and return a source positioned at the body start."""
        owned = None
        if client is None:
            owned = client = httpx.Client(timeout=timeout or get_stream_config().http_timeout_seconds)
        try:
            request = client.build_request(method, url, json=json, headers=_headers(headers))
            response = client.send(request, stream=True)
        except httpx.HTTPError as e:
            if owned is not None:
                owned.close()
            raise _connect_failure(e) from e
        if response.is_error:
            try:
                body = response.read()
            except httpx.HTTPError as e:
                raise _connect_failure(e) from e
            finally:
                response.close()
                if owned is not None:
                    owned.close()
            raise _status_failure(response, body)
        return cls(response, chunk_size=chunk_size, owned_client=owned)

    def read(self) -> Optional[bytes]:
        return next(self._chunks, None)

    def release(self) -> None:
        try:
            self.response.close()
        finally:
            if self._owned_client is not None:
                self._owned_client.close()


class AsyncHttpxChunkSource:
    """Async chunk source over an open streaming ``httpx.Response``."""

    def __init__(
        self,
        response: httpx.Response,
        *,
        chunk_size: Optional[int] = None,
        owned_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.response = response
        self._chunks: AsyncIterator[bytes] = response.aiter_bytes(chunk_size)
        self._owned_client = owned_client

    @classmethod
    async def open(
        cls,
        url: str,
        *,
        method: str = "POST",
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
    ) -> "AsyncHttpxChunkSource":
        owned = None
        if client is None:
            owned = client = httpx.AsyncClient(timeout=timeout or get_stream_config().http_timeout_seconds)
        try:
            request = client.build_request(method, url, json=json, headers=_headers(headers))
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            if owned is not None:
                await owned.aclose()
            raise _connect_failure(e) from e
        if response.is_error:
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise _connect_failure(e) from e
            finally:
                await response.aclose()
                if owned is not None:
                    await owned.aclose()
            raise _status_failure(response, body)
        return cls(response, chunk_size=chunk_size, owned_client=owned)

    async def read(self) -> Optional[bytes]:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return None

    async def release(self) -> None:
        try:
            await self.response.aclose()
        finally:
            if self._owned_client is not None:
                await self._owned_client.aclose()


__all__ = ["HttpxChunkSource", "AsyncHttpxChunkSource"]
