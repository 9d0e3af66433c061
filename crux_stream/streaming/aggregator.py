"""Fold an ordered record sequence into one :class:`AggregatedState`.

Per record, in arrival order:

- fragments are appended (never reordered, never dropped); a fragment that is
  itself a JSON object with a ``data`` key is re-serialized as the compact
  ``{"data": ...}`` object, anything else is appended verbatim;
- ``finish_reason`` and ``usage_metadata`` overwrite (last write wins);
- ``model_version`` is taken from the first record that has one.

No record is rejected here.
"""
from __future__ import annotations

import json
from typing import Iterable, Optional

from ..base.models import AggregatedState, DecodedRecord


def normalize_fragment(text: str) -> str:
    """Return the canonical form of a fragment carrying a ``data`` envelope."""
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return text
    if isinstance(parsed, dict) and "data" in parsed:
        return json.dumps({"data": parsed["data"]}, ensure_ascii=False, separators=(",", ":"))
    return text


class StreamAggregator:
    """Owns the fold state for exactly one stream."""

    def __init__(self, state: Optional[AggregatedState] = None) -> None:
        self.state = state if state is not None else AggregatedState()

    def add(self, record: DecodedRecord) -> AggregatedState:
        state = self.state
        state.records += 1
        if record.fragments:
            state.fragments.extend(normalize_fragment(f) for f in record.fragments)
        if record.finish_reason is not None:
            state.finish_reason = record.finish_reason
        if state.model_version is None and record.model_version is not None:
            state.model_version = record.model_version
        if record.usage_metadata is not None:
            state.usage_metadata = dict(record.usage_metadata)
        return state

    def consume(self, records: Iterable[DecodedRecord]) -> AggregatedState:
        for record in records:
            self.add(record)
        return self.state


def aggregate(records: Iterable[DecodedRecord]) -> AggregatedState:
    """Fold ``records`` into a fresh state."""
    return StreamAggregator().consume(records)


__all__ = ["StreamAggregator", "aggregate", "normalize_fragment"]
