"""DecodedRecord: one structured value decoded from a stream segment."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..dto.chunk import StreamChunkDTO

_SCALARS = (str, int, float, bool)


def _scalar_usage(usage: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Keep only scalar usage entries (nested token-detail lists are dropped)."""
    if usage is None:
        return None
    return {k: v for k, v in usage.items() if isinstance(v, _SCALARS)}


@dataclass(frozen=True)
class DecodedRecord:
    """Typed view of one decoded record.

    Every typed field is ``None`` when the record did not supply it; nothing
    is inferred. ``raw`` is the parsed JSON value exactly as decoded.
    """

    raw: Any
    fragments: Optional[Tuple[str, ...]] = None
    finish_reason: Optional[str] = None
    model_version: Optional[str] = None
    usage_metadata: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_value(cls, value: Any) -> "DecodedRecord":
        """Build a record from a parsed JSON value.

        Values that are not objects keep only ``raw``. Envelope fields are
        extracted independently, so an ill-typed field is absent while the
        others (fragments in particular) survive.
        """
        if not isinstance(value, dict):
            return cls(raw=value)
        dto = StreamChunkDTO.model_validate(value)
        fragments = dto.fragments()
        return cls(
            raw=value,
            fragments=tuple(fragments) if fragments is not None else None,
            finish_reason=dto.first_finish_reason(),
            model_version=dto.model_version,
            usage_metadata=_scalar_usage(dto.usage_metadata),
        )


__all__ = ["DecodedRecord"]
