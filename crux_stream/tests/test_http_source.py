"""httpx chunk sources against ``httpx.MockTransport``."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from crux_stream import StreamPipeline, TransportFailure, adecode_stream
from crux_stream.http import AsyncHttpxChunkSource, HttpxChunkSource
from crux_stream.tests.helpers import gemini_record, ndjson

BODY = ndjson(gemini_record('{"data": {"ok": ', model="gemini-x"), gemini_record("true}}", finish="STOP"))
URL = "https://example.test/v1/models/x:streamGenerateContent"


def _handler(status: int = 200, body: bytes = BODY, seen=None):
    def handle(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, content=body)

    return handle


def test_streams_body_into_pipeline():
    seen = []
    client = httpx.Client(transport=httpx.MockTransport(_handler(seen=seen)))
    source = HttpxChunkSource.open(URL, json={"contents": []}, client=client, chunk_size=5)
    payload = StreamPipeline(source, source_name=URL).run()
    assert payload.data == {"ok": True}  # nosec B101 - pytest assert in tests
    assert source.response.is_closed  # nosec B101 - pytest assert in tests
    assert seen[0].method == "POST"  # nosec B101 - pytest assert in tests
    assert seen[0].headers["accept"] == "application/x-ndjson"  # nosec B101 - pytest assert in tests
    client.close()


def test_error_status_raises_before_body():
    client = httpx.Client(transport=httpx.MockTransport(_handler(503, b'{"error": "overloaded"}')))
    with pytest.raises(TransportFailure) as info:
        HttpxChunkSource.open(URL, client=client)
    err = info.value
    assert err.status == 503 and err.retryable  # nosec B101 - pytest assert in tests
    assert "overloaded" in err.message  # nosec B101 - pytest assert in tests
    client.close()


def test_client_error_status_not_retryable():
    client = httpx.Client(transport=httpx.MockTransport(_handler(400, b"bad request")))
    with pytest.raises(TransportFailure) as info:
        HttpxChunkSource.open(URL, client=client)
    assert info.value.status == 400 and not info.value.retryable  # nosec B101 - pytest assert in tests
    client.close()


def test_connect_error_is_wrapped():
    def handle(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handle))
    with pytest.raises(TransportFailure) as info:
        HttpxChunkSource.open(URL, client=client)
    assert isinstance(info.value.__cause__, httpx.ConnectError) and info.value.retryable  # nosec B101 - pytest assert in tests
    client.close()


def test_async_source():
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler())) as client:
            source = await AsyncHttpxChunkSource.open(URL, method="GET", client=client, chunk_size=4)
            payload = await adecode_stream(source)
            return payload, source

    payload, source = asyncio.run(main())
    assert payload.data == {"ok": True} and payload.model_version == "gemini-x"  # nosec B101 - pytest assert in tests
    assert source.response.is_closed  # nosec B101 - pytest assert in tests


class _StalledBody(httpx.SyncByteStream, httpx.AsyncByteStream):
    """Error body whose read times out."""

    def __iter__(self):
        raise httpx.ReadTimeout("body stalled")
        yield b""  # pragma: no cover

    async def __aiter__(self):
        raise httpx.ReadTimeout("body stalled")
        yield b""  # pragma: no cover


def test_error_body_read_failure_still_closes_response_and_owned_client(monkeypatch):
    responses = []

    def handle(request: httpx.Request) -> httpx.Response:
        responses.append(httpx.Response(502, stream=_StalledBody()))
        return responses[-1]

    made = []
    real_client = httpx.Client

    def client_factory(**kwargs):
        made.append(real_client(transport=httpx.MockTransport(handle), **kwargs))
        return made[-1]

    monkeypatch.setattr(httpx, "Client", client_factory)
    with pytest.raises(TransportFailure) as info:
        HttpxChunkSource.open(URL)
    assert info.value.code.value == "timeout"  # nosec B101 - pytest assert in tests
    assert isinstance(info.value.__cause__, httpx.ReadTimeout)  # nosec B101 - pytest assert in tests
    assert responses[0].is_closed  # nosec B101 - pytest assert in tests
    assert made and made[0].is_closed  # nosec B101 - pytest assert in tests


def test_async_error_body_read_failure_closes_response():
    responses = []

    def handle(request: httpx.Request) -> httpx.Response:
        responses.append(httpx.Response(503, stream=_StalledBody()))
        return responses[-1]

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handle)) as client:
            with pytest.raises(TransportFailure):
                await AsyncHttpxChunkSource.open(URL, client=client)

    asyncio.run(main())
    assert responses[0].is_closed  # nosec B101 - pytest assert in tests
