"""Builders and fake chunk sources shared by the stream tests."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def gemini_record(
    *texts: str,
    finish: Optional[str] = None,
    model: Optional[str] = None,
    usage: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return one GenerateContent-style stream record."""
    candidate: Dict[str, Any] = {"content": {"role": "model", "parts": [{"text": t} for t in texts]}}
    if finish is not None:
        candidate["finishReason"] = finish
    record: Dict[str, Any] = {"candidates": [candidate]}
    if model is not None:
        record["modelVersion"] = model
    if usage is not None:
        record["usageMetadata"] = usage
    return record


def ndjson(*records: Any) -> bytes:
    return "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in records).encode("utf-8")


def split_every(data: bytes, size: int) -> List[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


@dataclass
class RecordingSource:
    """ChunkSource that counts reads/releases and can fail on demand."""

    chunks: List[bytes]
    fail_at: Optional[int] = None
    error: Exception = field(default_factory=lambda: OSError("connection reset"))
    release_error: Optional[Exception] = None
    reads: int = 0
    releases: int = 0

    def read(self) -> Optional[bytes]:
        if self.fail_at is not None and self.reads == self.fail_at:
            self.reads += 1
            raise self.error
        self.reads += 1
        if not self.chunks:
            return None
        return self.chunks.pop(0)

    def release(self) -> None:
        self.releases += 1
        if self.release_error is not None:
            raise self.release_error


@dataclass
class AsyncRecordingSource:
    chunks: List[bytes]
    fail_at: Optional[int] = None
    error: Exception = field(default_factory=lambda: OSError("connection reset"))
    reads: int = 0
    releases: int = 0

    async def read(self) -> Optional[bytes]:
        if self.fail_at is not None and self.reads == self.fail_at:
            self.reads += 1
            raise self.error
        self.reads += 1
        if not self.chunks:
            return None
        return self.chunks.pop(0)

    async def release(self) -> None:
        self.releases += 1


def events(records) -> List[Dict[str, Any]]:
    """Decode captured ``LogRecord`` messages emitted by ``log_event``."""
    out = []
    for r in records:
        try:
            payload = json.loads(r.getMessage())
        except ValueError:
            continue
        if isinstance(payload, dict) and "event" in payload:
            out.append(payload)
    return out
