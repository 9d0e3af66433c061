"""StreamAggregator fold semantics."""
from __future__ import annotations

from crux_stream.base.models import DecodedRecord
from crux_stream.streaming import StreamAggregator, aggregate, normalize_fragment


def _rec(*fragments, finish=None, model=None, usage=None):
    return DecodedRecord(
        raw={},
        fragments=tuple(fragments) if fragments else None,
        finish_reason=finish,
        model_version=model,
        usage_metadata=usage,
    )


def test_fragments_appended_in_arrival_order():
    state = aggregate([_rec('{"da'), _rec("ta", '":'), _rec(), _rec("1}")])
    assert state.fragments == ['{"da', "ta", '":', "1}"]  # nosec B101 - pytest assert in tests
    assert state.document() == '{"data":1}'  # nosec B101 - pytest assert in tests
    assert state.records == 4  # nosec B101 - pytest assert in tests


def test_data_envelope_fragment_is_reserialized():
    assert normalize_fragment('{ "data" : [1, 2], "other": true }') == '{"data":[1,2]}'  # nosec B101 - pytest assert in tests
    assert normalize_fragment('{"nodata": 1}') == '{"nodata": 1}'  # nosec B101 - pytest assert in tests
    assert normalize_fragment("plain text") == "plain text"  # nosec B101 - pytest assert in tests
    assert normalize_fragment('"é"') == '"é"'  # nosec B101 - pytest assert in tests


def test_metadata_precedence():
    agg = StreamAggregator()
    agg.add(_rec("a", model="m-1", usage={"promptTokenCount": 1}))
    agg.add(_rec("b", finish="MAX_TOKENS", model="m-2"))
    agg.add(_rec("c", finish="STOP", usage={"promptTokenCount": 1, "totalTokenCount": 9}))
    agg.add(_rec("d"))
    state = agg.state
    assert state.model_version == "m-1"  # nosec B101 - pytest assert in tests
    assert state.finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert state.usage_metadata == {"promptTokenCount": 1, "totalTokenCount": 9}  # nosec B101 - pytest assert in tests


def test_usage_is_copied_not_aliased():
    usage = {"totalTokenCount": 1}
    state = aggregate([_rec(usage=usage)])
    usage["totalTokenCount"] = 2
    assert state.usage_metadata == {"totalTokenCount": 1}  # nosec B101 - pytest assert in tests


def test_empty_sequence_gives_empty_state():
    state = aggregate([])
    assert state.fragments == [] and state.model_version is None and state.records == 0  # nosec B101 - pytest assert in tests
