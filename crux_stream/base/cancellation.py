"""Cooperative cancellation primitives.

A :class:`CancellationToken` is polled by the pipeline before every chunk
request. Cancelling it makes the next poll raise :class:`CancelledError`,
which releases the chunk source and discards any partially aggregated state.
Child tokens inherit cancellation from their parent.
"""
from __future__ import annotations

from threading import Lock
from typing import List, Optional


class CancelledError(RuntimeError):
    """Raised when a stream decode is cancelled cooperatively.

    Kept distinct from transport failures so callers can skip retry prompts
    and error reporting for user-initiated aborts.
    """

    def __init__(self, reason: str = "stream cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class CancellationToken:
    """Thread-safe, idempotent cancellation flag with cascading children."""

    def __init__(self, *, parent: Optional["CancellationToken"] = None) -> None:
        self._lock = Lock()
        self._cancelled = False
        self._reason: Optional[str] = None
        self._children: List[CancellationToken] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation; later calls keep the first reason."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._reason = reason
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        with self._lock:
            self._children.append(token)
            cancelled, reason = self._cancelled, self._reason
        if cancelled:
            token.cancel(reason)
        return token

    def unlink_child(self, token: "CancellationToken") -> None:
        """Stop cascading to ``token`` (no-op when it is not linked)."""
        with self._lock:
            if token in self._children:
                self._children.remove(token)

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancelledError(self._reason or "stream cancelled")

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return f"CancellationToken(cancelled={self._cancelled}, reason={self._reason!r})"


__all__ = ["CancellationToken", "CancelledError"]
