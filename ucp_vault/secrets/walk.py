"""Schema-agnostic traversal of JSON-like values.

Configuration is read back as nested ``dict`` / ``list`` / scalar trees.
:func:`iter_strings` yields every string leaf regardless of depth, so the
reference scanner never needs to know the endpoint schema.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Set


def iter_strings(value: Any) -> Iterator[str]:
    """Yield every string leaf of *value* (dict values, list items, scalars)."""
    stack: List[Any] = [value]
    while stack:
        current = stack.pop()
        if isinstance(current, str):
            yield current
        elif isinstance(current, dict):
            stack.extend(current.values())
        elif isinstance(current, (list, tuple)):
            stack.extend(current)
        # None, bool, int, float: nothing to visit


def collect_matching(value: Any, predicate: Callable[[str], bool], into: Set[str]) -> Set[str]:
    """Add every trimmed string leaf of *value* accepted by *predicate* to *into*."""
    for leaf in iter_strings(value):
        trimmed = leaf.strip()
        if trimmed and predicate(trimmed):
            into.add(trimmed)
    return into
