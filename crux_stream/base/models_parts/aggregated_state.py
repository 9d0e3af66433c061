"""Mutable fold accumulator for one stream."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AggregatedState:
    """State folded from the ordered record sequence.

    Attributes:
        fragments: Append-only text fragments in arrival order.
        finish_reason: Last completion reason seen (last write wins).
        model_version: First model version seen (first write wins).
        usage_metadata: Most recent usage mapping seen (last write wins).
        records: Number of records folded.
    """

    fragments: List[str] = field(default_factory=list)
    finish_reason: Optional[str] = None
    model_version: Optional[str] = None
    usage_metadata: Dict[str, Any] = field(default_factory=dict)
    records: int = 0

    def document(self) -> str:
        """Concatenate fragments with no separator."""
        return "".join(self.fragments)


__all__ = ["AggregatedState"]
