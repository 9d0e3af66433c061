"""Resolve a completed :class:`AggregatedState` into a :class:`FinalPayload`."""
from __future__ import annotations

import json
import logging
from typing import Optional

from ..base.errors import ErrorCode, FinalAggregationFailure
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import AggregatedState, FinalPayload
from ..base.tracing import start_span
from ..config import StreamConfig, get_stream_config
from .repair import strip_code_fences


class FinalPayloadResolver:
    """Concatenate fragments, parse the document, and extract ``data``.

    Unlike per-record decoding there is no fallback here: once the stream is
    drained the fragments must form one coherent document, otherwise
    :class:`FinalAggregationFailure` is raised.
    """

    def __init__(
        self,
        *,
        config: Optional[StreamConfig] = None,
        logger: Optional[logging.Logger] = None,
        ctx: Optional[LogContext] = None,
    ) -> None:
        self._config = config or get_stream_config()
        self._logger = logger or get_logger("crux_stream.resolver")
        self._ctx = ctx

    def resolve(self, state: AggregatedState) -> FinalPayload:
        document = state.document()
        if self._config.strip_code_fences:
            document = strip_code_fences(document)
        with start_span("crux_stream.resolve") as span:
            span.set_attribute("stream.fragments", len(state.fragments))
            try:
                parsed = json.loads(document)
            except (ValueError, RecursionError) as e:
                preview = document[: self._config.preview_chars]
                reason = "no fragments to resolve" if not state.fragments else f"document is not valid JSON: {e}"
                normalized_log_event(
                    self._logger,
                    "stream.resolve.error",
                    self._ctx,
                    phase="resolve",
                    error_code=ErrorCode.FINAL_AGGREGATION.value,
                    records=state.records,
                    tokens=state.usage_metadata or None,
                    level=logging.ERROR,
                    error=reason,
                    document=preview,
                )
                raise FinalAggregationFailure(message=reason, segment=preview, raw=e) from e

        data = parsed.get("data") if isinstance(parsed, dict) else None
        return FinalPayload(
            model_version=state.model_version or self._config.default_model_version,
            usage_metadata=dict(state.usage_metadata),
            data=data,
        )


def resolve(state: AggregatedState, *, config: Optional[StreamConfig] = None) -> FinalPayload:
    """Resolve ``state`` with a one-off resolver."""
    return FinalPayloadResolver(config=config).resolve(state)


__all__ = ["FinalPayloadResolver", "resolve"]
