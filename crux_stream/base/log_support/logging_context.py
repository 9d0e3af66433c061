"""Structured logging context for one stream decode operation."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Fields merged into every event emitted for a stream.

    ``model_version`` is filled in once the first record naming a model arrives.
    """

    stream_id: Optional[str] = None
    source: Optional[str] = None
    model_version: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None})
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["LogContext"]
