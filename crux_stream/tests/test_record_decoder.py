"""RecordDecoder: direct parse, glued-record split, repair, drop."""
from __future__ import annotations

import json
import logging

from crux_stream.base.errors import ErrorCode, RecordParseFailure, RepairFailure
from crux_stream.config import StreamConfig
from crux_stream.streaming import RecordDecoder
from crux_stream.tests.helpers import events, gemini_record


def _decoder(**config):
    seen = []
    decoder = RecordDecoder(config=StreamConfig(**config), on_error=seen.append)
    return decoder, seen


def test_single_record_is_typed():
    decoder, seen = _decoder()
    line = json.dumps(gemini_record("hi", finish="STOP", model="m-1", usage={"totalTokenCount": 3}))
    (record,) = decoder.decode(line)
    assert record.fragments == ("hi",)  # nosec B101 - pytest assert in tests
    assert record.finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert record.model_version == "m-1"  # nosec B101 - pytest assert in tests
    assert record.usage_metadata == {"totalTokenCount": 3}  # nosec B101 - pytest assert in tests
    assert seen == [] and decoder.segments == 1  # nosec B101 - pytest assert in tests


def test_glued_records_split_in_order():
    decoder, seen = _decoder()
    records = decoder.decode('{"text":"a"}{"text":"b"} {"text":"c"}')
    assert [r.fragments for r in records] == [("a",), ("b",), ("c",)]  # nosec B101 - pytest assert in tests
    assert seen == []  # nosec B101 - pytest assert in tests


def test_glued_piece_failure_is_reported_and_others_kept():
    decoder, seen = _decoder()
    records = decoder.decode('{"text":"a"}{bad}')
    assert [r.fragments for r in records] == [("a",)]  # nosec B101 - pytest assert in tests
    assert len(seen) == 1 and isinstance(seen[0], RecordParseFailure)  # nosec B101 - pytest assert in tests
    assert seen[0].segment == "{bad}"  # nosec B101 - pytest assert in tests


def test_trailing_comma_is_repaired_silently():
    decoder, seen = _decoder()
    (record,) = decoder.decode('{"text":"a",}')
    assert record.fragments == ("a",)  # nosec B101 - pytest assert in tests
    assert seen == []  # nosec B101 - pytest assert in tests


def test_truncated_object_yields_one_notification():
    decoder, seen = _decoder()
    assert decoder.decode('{"a":') == []  # nosec B101 - pytest assert in tests
    assert len(seen) == 1  # nosec B101 - pytest assert in tests
    assert seen[0].code is ErrorCode.RECORD_PARSE and not seen[0].fatal  # nosec B101 - pytest assert in tests
    assert decoder.issues == seen  # nosec B101 - pytest assert in tests


def test_unrepairable_object_reports_repair_failure():
    decoder, seen = _decoder()
    assert decoder.decode('{"a": tru}') == []  # nosec B101 - pytest assert in tests
    assert len(seen) == 1 and isinstance(seen[0], RepairFailure)  # nosec B101 - pytest assert in tests


def test_recovery_toggles():
    decoder, seen = _decoder(repair_enabled=False)
    assert decoder.decode('{"text":"a",}') == []  # nosec B101 - pytest assert in tests
    assert isinstance(seen[0], RecordParseFailure)  # nosec B101 - pytest assert in tests

    decoder, seen = _decoder(split_glued_records=False, repair_enabled=False)
    assert decoder.decode('{"text":"a"}{"text":"b"}') == []  # nosec B101 - pytest assert in tests
    assert len(seen) == 1  # nosec B101 - pytest assert in tests


def test_blank_segments_are_skipped_silently():
    decoder, seen = _decoder()
    assert decoder.decode("") == [] and decoder.decode("  \r") == []  # nosec B101 - pytest assert in tests
    assert seen == [] and decoder.segments == 0  # nosec B101 - pytest assert in tests


def test_non_object_values_keep_raw_only():
    decoder, _ = _decoder()
    (record,) = decoder.decode("[1, 2]")
    assert record.raw == [1, 2] and record.fragments is None  # nosec B101 - pytest assert in tests


def test_preview_is_truncated():
    decoder, seen = _decoder(preview_chars=4)
    decoder.decode("garbage that is long")
    assert seen[0].segment == "garb"  # nosec B101 - pytest assert in tests


def test_dropped_segment_is_logged(log_capture):
    decoder = RecordDecoder(config=StreamConfig())
    decoder.decode("nope")
    dropped = [e for e in events(log_capture) if e["event"] == "stream.record.dropped"]
    assert len(dropped) == 1  # nosec B101 - pytest assert in tests
    assert dropped[0]["phase"] == "decode"  # nosec B101 - pytest assert in tests
    assert dropped[0]["error_code"] == "record_parse"  # nosec B101 - pytest assert in tests
    assert dropped[0]["strategy"] == "parse"  # nosec B101 - pytest assert in tests
    assert any(r.levelno == logging.WARNING for r in log_capture)  # nosec B101 - pytest assert in tests


def test_iter_decode_is_lazy():
    decoder, _ = _decoder()
    produced = []

    def segments():
        for s in ('{"text":"a"}', '{"text":"b"}'):
            produced.append(s)
            yield s

    it = decoder.iter_decode(segments())
    first = next(it)
    assert first.fragments == ("a",) and len(produced) == 1  # nosec B101 - pytest assert in tests
