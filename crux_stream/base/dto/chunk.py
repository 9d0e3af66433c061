"""DTOs describing one upstream stream record.

The upstream service streams "GenerateContent"-style objects::

    {"candidates": [{"content": {"parts": [{"text": "..."}]}, "finishReason": "STOP"}],
     "modelVersion": "...", "usageMetadata": {"promptTokenCount": 12, ...}}

Its proxy may also flatten a delta to ``{"text": "..."}``. Every model allows
extra keys; the payload schema beyond these fields is opaque to the pipeline.

Each typed field is validated on its own: an ill-typed value (``"modelVersion": 7``)
makes only that field absent and leaves its siblings intact.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidatorFunctionWrapHandler, field_validator


def _absent_when_invalid(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


class _WireModel(BaseModel):
    # modelVersion maps onto a "model_" field, which pydantic reserves by default.
    model_config = ConfigDict(extra="allow", populate_by_name=True, protected_namespaces=())


class PartDTO(_WireModel):
    text: Optional[str] = None

    @field_validator("text", mode="wrap")
    @classmethod
    def drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        return _absent_when_invalid(value, handler)


class ContentDTO(_WireModel):
    role: Optional[str] = None
    parts: Optional[List[PartDTO]] = None

    @field_validator("role", "parts", mode="wrap")
    @classmethod
    def drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        return _absent_when_invalid(value, handler)


class CandidateDTO(_WireModel):
    content: Optional[ContentDTO] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")
    index: Optional[int] = None

    @field_validator("content", "finish_reason", "index", mode="wrap")
    @classmethod
    def drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        return _absent_when_invalid(value, handler)


class StreamChunkDTO(_WireModel):
    """Top-level record envelope.

    Attributes:
        candidates: Generated candidates; only the first one is consumed.
        model_version: Upstream model identifier.
        usage_metadata: Token accounting; may contain nested detail lists.
        text: Flattened single-delta shape emitted by the proxy.
    """

    candidates: Optional[List[CandidateDTO]] = None
    model_version: Optional[str] = Field(default=None, alias="modelVersion")
    usage_metadata: Optional[Dict[str, Any]] = Field(default=None, alias="usageMetadata")
    text: Optional[str] = None

    @field_validator("candidates", "model_version", "usage_metadata", "text", mode="wrap")
    @classmethod
    def drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        return _absent_when_invalid(value, handler)

    def fragments(self) -> Optional[List[str]]:
        """Text fragments in wire order, or ``None`` when the record has none."""
        if self.candidates:
            content = self.candidates[0].content
            if content is not None and content.parts:
                return [p.text for p in content.parts if isinstance(p.text, str)]
        if self.text is not None:
            return [self.text]
        return None

    def first_finish_reason(self) -> Optional[str]:
        return self.candidates[0].finish_reason if self.candidates else None


__all__ = ["PartDTO", "ContentDTO", "CandidateDTO", "StreamChunkDTO"]
