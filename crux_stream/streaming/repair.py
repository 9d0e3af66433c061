"""Bounded, heuristic repair of near-valid JSON text.

This is deliberately not a JSON grammar: it fixes the handful of malformations
commonly produced by generative models and truncated transports, and leaves
everything else alone for ``json.loads`` to reject.

Corrections, in order:
    1. Remove a surrounding markdown code fence.
    2. Drop leading prose before the first ``{`` or ``[``.
    3. Drop commas directly before ``}`` or ``]`` (outside string literals).
    4. Terminate an unterminated string literal.
    5. Drop a dangling trailing comma and close unclosed ``{``/``[`` in
       nesting order.

:func:`repair_json` never raises.
"""
from __future__ import annotations

from typing import List

_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Strip ```` ```json ... ``` ```` (or a bare ```` ``` ````) around ``text``."""
    s = text.strip()
    if s.startswith("```"):
        newline = s.find("\n")
        head = s[3:newline] if newline != -1 else s[3:]
        # Opening fence may carry a language tag (```json).
        if head.strip().isalnum() or not head.strip():
            s = s[newline + 1:] if newline != -1 else ""
        else:
            s = s[3:]
    if s.endswith("```"):
        s = s[:-3]
    return s.strip()


def _trim_to_envelope(text: str) -> str:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    return text[min(starts):] if starts else text


def repair_json(text: str) -> str:
    """Return ``text`` with the bounded set of corrections applied.

    The result is more likely, not guaranteed, to satisfy ``json.loads``.
    """
    s = _trim_to_envelope(strip_code_fences(text))
    out: List[str] = []
    stack: List[str] = []
    in_string = False
    escaped = False
    n = len(s)
    i = 0
    while i < n:
        ch = s[i]
        i += 1
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in "}]":
            if stack and stack[-1] == ch:
                stack.pop()
        elif ch == ",":
            j = i
            while j < n and s[j].isspace():
                j += 1
            if j < n and s[j] in "}]":
                continue
        out.append(ch)

    if in_string:
        if escaped:
            out.pop()
        out.append('"')
    result = "".join(out).rstrip()
    if stack:
        while result.endswith(","):
            result = result[:-1].rstrip()
        result += "".join(reversed(stack))
    return result


__all__ = ["repair_json", "strip_code_fences"]
