"""Unified configuration layer for the stream decoding pipeline.

Goals
-----
* Centralize defaults (codec, delimiter, recovery toggles, placeholders).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults (``config.defaults``)
    2. Optional external config file pointed to by ``CRUX_STREAM_CONFIG_FILE``
       (YAML or JSON; JSON is valid YAML so one loader covers both)
    3. Environment variables ``CRUX_STREAM_<FIELD>`` (e.g. ``CRUX_STREAM_REPAIR_ENABLED``)
    4. In-code overrides passed to :func:`get_stream_config`
* Validate once, hand out an immutable :class:`StreamConfig`.

External Config File
--------------------
Either a flat mapping of field names or a ``stream:`` section::

    stream:
      encoding: utf-8
      repair_enabled: false
      default_model_version: unset

Public API
----------
* ``StreamConfig``
* ``get_stream_config(overrides: dict | None = None) -> StreamConfig``
* ``reset_config_cache()``
"""
from __future__ import annotations

import codecs
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .defaults import (
    STREAM_DEFAULT_DECODE_ERRORS,
    STREAM_DEFAULT_ENCODING,
    STREAM_DEFAULT_HTTP_TIMEOUT_SECONDS,
    STREAM_DEFAULT_LINE_DELIMITER,
    STREAM_DEFAULT_MODEL_VERSION,
    STREAM_DEFAULT_PREVIEW_CHARS,
    STREAM_DEFAULT_REPAIR,
    STREAM_DEFAULT_SPLIT_GLUED,
    STREAM_DEFAULT_STRIP_CODE_FENCES,
)

ENV_PREFIX = "CRUX_STREAM_"
CONFIG_FILE_ENV = "CRUX_STREAM_CONFIG_FILE"

_TRUTHY = {"1", "t", "true", "y", "yes", "on"}
_FALSY = {"0", "f", "false", "n", "no", "off"}


@dataclass(frozen=True)
class StreamConfig:
    """Normalized settings for one pipeline instance.

    Attributes:
        encoding: Codec used by the incremental byte decoder.
        decode_errors: Decoder error policy (``strict``, ``replace``, ``ignore``).
        line_delimiter: Single character separating segments.
        split_glued_records: Enable the ``}{`` split fallback.
        repair_enabled: Enable the tolerant repair fallback.
        strip_code_fences: Strip a markdown fence around the final document.
        default_model_version: Placeholder when no record names a model.
        preview_chars: Segment preview length in log events and errors.
        http_timeout_seconds: Timeout applied by the httpx chunk sources.
    """

    encoding: str = STREAM_DEFAULT_ENCODING
    decode_errors: str = STREAM_DEFAULT_DECODE_ERRORS
    line_delimiter: str = STREAM_DEFAULT_LINE_DELIMITER
    split_glued_records: bool = STREAM_DEFAULT_SPLIT_GLUED
    repair_enabled: bool = STREAM_DEFAULT_REPAIR
    strip_code_fences: bool = STREAM_DEFAULT_STRIP_CODE_FENCES
    default_model_version: str = STREAM_DEFAULT_MODEL_VERSION
    preview_chars: int = STREAM_DEFAULT_PREVIEW_CHARS
    http_timeout_seconds: float = STREAM_DEFAULT_HTTP_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {self.encoding!r}") from e
        if len(self.line_delimiter) != 1:
            raise ValueError("line_delimiter must be exactly one character")
        if self.preview_chars < 0:
            raise ValueError("preview_chars must be >= 0")
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")

    def with_overrides(self, **overrides: Any) -> "StreamConfig":
        """Return a copy with the given non-``None`` fields replaced."""
        return replace(self, **_coerce_mapping({k: v for k, v in overrides.items() if v is not None}))


_FIELD_TYPES: Dict[str, type] = {f.name: type(f.default) for f in fields(StreamConfig)}
_FILE_CACHE: Dict[str, Dict[str, Any]] = {}


def _coerce(name: str, value: Any) -> Any:
    """Coerce a raw (usually string) value to the declared field type."""
    kind = _FIELD_TYPES[name]
    if kind is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUTHY:
            return True
        if text in _FALSY:
            return False
        raise ValueError(f"{name}: expected a boolean, got {value!r}")
    if kind is int:
        return int(value)
    if kind is float:
        return float(value)
    return str(value)


def _coerce_mapping(values: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(values) - set(_FIELD_TYPES))
    if unknown:
        raise ValueError(f"unknown stream config field(s): {', '.join(unknown)}")
    return {k: _coerce(k, v) for k, v in values.items()}


def _load_external_config() -> Dict[str, Any]:
    path = os.getenv(CONFIG_FILE_ENV)
    if not path:
        return {}
    if path in _FILE_CACHE:
        return _FILE_CACHE[path]
    p = Path(path).expanduser()
    data: Any = {}
    if p.is_file():
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if isinstance(data, dict) and isinstance(data.get("stream"), dict):
        data = data["stream"]
    if not isinstance(data, dict):
        data = {}
    # Ignore keys belonging to other tools sharing the file.
    data = {k: v for k, v in data.items() if k in _FIELD_TYPES}
    _FILE_CACHE[path] = data
    return data


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in _FIELD_TYPES:
        val = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if val is not None:
            out[name] = val
    return out


def get_stream_config(overrides: Optional[Mapping[str, Any]] = None) -> StreamConfig:
    """Return merged configuration for a pipeline.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    ``None`` values in ``overrides`` are ignored.

    Raises:
        ValueError: on unknown fields, uncoercible values, or failed validation.
    """
    cfg: Dict[str, Any] = {}
    cfg |= _load_external_config()
    cfg |= _env_overrides()
    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}
    return StreamConfig(**_coerce_mapping(cfg))


def reset_config_cache() -> None:
    """Forget cached config file contents (tests, hot reload)."""
    _FILE_CACHE.clear()


__all__ = [
    "StreamConfig",
    "get_stream_config",
    "reset_config_cache",
    "ENV_PREFIX",
    "CONFIG_FILE_ENV",
]
