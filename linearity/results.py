"""Canonical text for call results.

Outcomes compare return values by their canonical text, so the rendering
must not depend on incidental ordering: sets and dict items are sorted.
An exception that a call was expected to raise renders as its class name,
e.g. ``IndexError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def canonical_result(value: Any) -> str:
    """Render ``value`` as a deterministic, comparable string.

    >>> canonical_result({2: "b", 1: "a"})
    "{1: 'a', 2: 'b'}"
    >>> canonical_result({3, 1})
    '{1, 3}'
    >>> canonical_result(IndexError("pop from empty list"))
    'IndexError'
    """
    if isinstance(value, BaseException):
        return type(value).__name__
    if isinstance(value, Mapping):
        items = sorted((canonical_result(k), canonical_result(v)) for k, v in value.items())
        return "{" + ", ".join(f"{k}: {v}" for k, v in items) + "}"
    if isinstance(value, (set, frozenset)):
        if not value:
            return "set()"
        return "{" + ", ".join(sorted(canonical_result(v) for v in value)) + "}"
    if isinstance(value, list):
        return "[" + ", ".join(canonical_result(v) for v in value) + "]"
    if isinstance(value, tuple):
        inner = ", ".join(canonical_result(v) for v in value)
        return f"({inner},)" if len(value) == 1 else f"({inner})"
    return repr(value)
