"""Tracing facade over the OpenTelemetry API.

Only ``opentelemetry-api`` is required: without a configured SDK the global
tracer provider hands out non-recording spans, so instrumented code pays almost
nothing when tracing is off.
"""
from __future__ import annotations

from opentelemetry import trace

TRACER_NAME = "crux_stream"


def get_tracer(service_name: str = TRACER_NAME) -> trace.Tracer:
    return trace.get_tracer(service_name)


def start_span(name: str, *, service_name: str = TRACER_NAME):
    """Start a span as the current span; use as a context manager.

    Usage::

        with start_span("crux_stream.resolve") as span:
            span.set_attribute("stream.fragments", 3)
    """
    return get_tracer(service_name).start_as_current_span(name)


def open_span(name: str, *, service_name: str = TRACER_NAME) -> trace.Span:
    """Start a span WITHOUT making it current.

    Generators suspend between ``yield`` points and may be resumed or closed
    from another context, so they must not attach context. The caller ends
    the span (``span.end()``) in its ``finally`` block.
    """
    return get_tracer(service_name).start_span(name)


__all__ = ["get_tracer", "start_span", "open_span"]
