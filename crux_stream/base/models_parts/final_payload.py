"""Terminal result of one stream decode."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class FinalPayload:
    """Immutable final result.

    ``data`` is the ``data`` field of the resolved document, or ``None`` when
    the document has none. Its shape belongs to the caller.
    """

    model_version: str
    usage_metadata: Dict[str, Any] = field(default_factory=dict)
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelVersion": self.model_version,
            "usageMetadata": dict(self.usage_metadata),
            "data": self.data,
        }


__all__ = ["FinalPayload"]
