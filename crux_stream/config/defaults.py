"""crux_stream.config.defaults
===========================

Central place for small, stable default values used by the stream decoding
pipeline. These defaults can be overridden via environment variables, an
external config file, or explicit overrides passed to
:func:`crux_stream.config.get_stream_config`.

Only plain constants live here; this module performs no I/O and imports
nothing from the rest of the package.
"""

from __future__ import annotations

# ---- Text decoding ----
# Codec used to turn raw transport bytes into text.
STREAM_DEFAULT_ENCODING = "utf-8"
# Error policy handed to the incremental decoder (same semantics as bytes.decode).
STREAM_DEFAULT_DECODE_ERRORS = "replace"
# Segment delimiter for the newline-delimited record stream.
STREAM_DEFAULT_LINE_DELIMITER = "\n"

# ---- Record recovery ----
# Split segments holding several concatenated records ("}{").
STREAM_DEFAULT_SPLIT_GLUED = True
# Attempt bounded JSON repair on object-looking segments that fail to parse.
STREAM_DEFAULT_REPAIR = True

# ---- Final resolution ----
# Placeholder reported when no record carried a model version.
STREAM_DEFAULT_MODEL_VERSION = "unknown"
# Strip a surrounding markdown code fence from the concatenated document.
STREAM_DEFAULT_STRIP_CODE_FENCES = True

# ---- Logging ----
# Maximum number of characters of a dropped segment echoed into log events.
STREAM_DEFAULT_PREVIEW_CHARS = 200

# ---- HTTP transport ----
STREAM_DEFAULT_HTTP_TIMEOUT_SECONDS = 120.0
STREAM_DEFAULT_ACCEPT = "application/x-ndjson"


__all__ = [
    "STREAM_DEFAULT_ENCODING",
    "STREAM_DEFAULT_DECODE_ERRORS",
    "STREAM_DEFAULT_LINE_DELIMITER",
    "STREAM_DEFAULT_SPLIT_GLUED",
    "STREAM_DEFAULT_REPAIR",
    "STREAM_DEFAULT_MODEL_VERSION",
    "STREAM_DEFAULT_STRIP_CODE_FENCES",
    "STREAM_DEFAULT_PREVIEW_CHARS",
    "STREAM_DEFAULT_HTTP_TIMEOUT_SECONDS",
    "STREAM_DEFAULT_ACCEPT",
]
