"""FinalPayloadResolver: document assembly and failure semantics."""
from __future__ import annotations

import json

import pytest

from crux_stream.base.errors import ErrorCode, FinalAggregationFailure
from crux_stream.base.models import AggregatedState
from crux_stream.config import StreamConfig
from crux_stream.streaming import FinalPayloadResolver, resolve
from crux_stream.tests.helpers import events


def _state(*fragments, model=None, usage=None):
    return AggregatedState(fragments=list(fragments), model_version=model, usage_metadata=usage or {}, records=len(fragments))


def test_fragments_concatenate_into_document():
    payload = resolve(_state('{"data": {"greet', 'ing": "hé', 'llo"}}', model="m-1", usage={"totalTokenCount": 4}))
    assert payload.data == {"greeting": "héllo"}  # nosec B101 - pytest assert in tests
    assert payload.model_version == "m-1"  # nosec B101 - pytest assert in tests
    assert payload.usage_metadata == {"totalTokenCount": 4}  # nosec B101 - pytest assert in tests


def test_missing_data_field_is_not_an_error():
    assert resolve(_state('{"other": 1}')).data is None  # nosec B101 - pytest assert in tests
    assert resolve(_state("[1, 2]")).data is None  # nosec B101 - pytest assert in tests
    assert resolve(_state('{"data": null}')).data is None  # nosec B101 - pytest assert in tests


def test_model_version_placeholder():
    assert resolve(_state('{"data": 1}')).model_version == "unknown"  # nosec B101 - pytest assert in tests
    cfg = StreamConfig(default_model_version="n/a")
    assert resolve(_state('{"data": 1}'), config=cfg).model_version == "n/a"  # nosec B101 - pytest assert in tests


def test_code_fence_is_stripped_by_default():
    state = _state("```json\n", '{"data": 2}', "\n```")
    assert resolve(state).data == 2  # nosec B101 - pytest assert in tests
    with pytest.raises(FinalAggregationFailure):
        resolve(state, config=StreamConfig(strip_code_fences=False))


def test_no_fragments_is_fatal():
    with pytest.raises(FinalAggregationFailure) as info:
        resolve(_state())
    assert info.value.message == "no fragments to resolve"  # nosec B101 - pytest assert in tests
    assert info.value.fatal  # nosec B101 - pytest assert in tests


def test_invalid_document_is_fatal_and_logged(log_capture):
    resolver = FinalPayloadResolver(config=StreamConfig(preview_chars=8))
    with pytest.raises(FinalAggregationFailure) as info:
        resolver.resolve(_state('{"data": [1, 2', usage={"totalTokenCount": 1}))
    err = info.value
    assert err.code is ErrorCode.FINAL_AGGREGATION  # nosec B101 - pytest assert in tests
    assert err.segment == '{"data":'  # nosec B101 - pytest assert in tests
    assert isinstance(err.__cause__, json.JSONDecodeError)  # nosec B101 - pytest assert in tests
    logged = [e for e in events(log_capture) if e["event"] == "stream.resolve.error"]
    assert logged and logged[0]["error_code"] == "final_aggregation"  # nosec B101 - pytest assert in tests
    assert logged[0]["tokens"] == {"totalTokenCount": 1}  # nosec B101 - pytest assert in tests
